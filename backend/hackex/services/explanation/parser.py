import json
import logging
from typing import Optional

from hackex.models.finding import Explanation

logger = logging.getLogger(__name__)


def _parse_json(content: str) -> Optional[Explanation]:
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(data, dict) or "explanation" not in data:
        return None
    return Explanation(
        explanation=str(data.get("explanation") or ""),
        attack_scenario=str(data.get("attack_scenario") or ""),
        business_impact=str(data.get("business_impact") or ""),
        fix_recommendation=str(data.get("fix_recommendation") or ""),
    )


def _section_for(line: str) -> Optional[str]:
    lowered = line.lower()
    if "attack scenario" in lowered:
        return "attack_scenario"
    if "business impact" in lowered:
        return "business_impact"
    if "fix" in lowered or "recommendation" in lowered:
        return "fix_recommendation"
    return None


def parse_explanation(content: str) -> Explanation:
    """
    Turn a model answer into an Explanation.

    JSON with an "explanation" key is used as is. Anything else is read line
    by line: a line naming a section switches to it (the header itself is
    dropped) and every other non-empty line is appended to the current
    section, starting with the plain explanation.
    """
    parsed = _parse_json(content)
    if parsed is not None:
        return parsed

    sections = {
        "explanation": "",
        "attack_scenario": "",
        "business_impact": "",
        "fix_recommendation": "",
    }
    current = "explanation"
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        section = _section_for(line)
        if section:
            current = section
            continue
        sections[current] += " " + line

    logger.debug("Explanation answer was not JSON, parsed by section headers")
    return Explanation(**{key: value.strip() for key, value in sections.items()})
