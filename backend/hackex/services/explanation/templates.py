from typing import Dict

from hackex.models.finding import Explanation, Severity

FALLBACK_TEMPLATES: Dict[str, Explanation] = {
    Severity.CRITICAL.value: Explanation(
        explanation="This is a critical security vulnerability that could allow attackers to gain unauthorized access to your system or data.",
        attack_scenario="An attacker could exploit this vulnerability to steal sensitive information, modify data, or take control of your application.",
        business_impact="This could result in data breaches, legal liability, loss of customer trust, and potential business shutdown.",
        fix_recommendation="Immediate action is required. Review your security configuration and implement proper access controls.",
    ),
    Severity.HIGH.value: Explanation(
        explanation="This is a high-severity security issue that significantly increases your risk of being compromised.",
        attack_scenario="Attackers could use this weakness to gain unauthorized access or extract sensitive information from your system.",
        business_impact="This could lead to data exposure, reputation damage, and potential regulatory penalties.",
        fix_recommendation="This should be fixed before launch. Implement the recommended security measures.",
    ),
    Severity.MEDIUM.value: Explanation(
        explanation="This is a moderate security concern that should be addressed to improve your overall security posture.",
        attack_scenario="While not immediately critical, this could be combined with other vulnerabilities to compromise your system.",
        business_impact="This could contribute to security incidents and make your system more vulnerable to attacks.",
        fix_recommendation="Plan to address this issue soon to maintain good security hygiene.",
    ),
    Severity.LOW.value: Explanation(
        explanation="This is a minor security concern that represents a best practice violation.",
        attack_scenario="The risk is relatively low, but addressing this will improve your overall security posture.",
        business_impact="The immediate business impact is minimal, but it's good practice to fix this.",
        fix_recommendation="Address this when convenient as part of your security improvements.",
    ),
}


def fallback_for(severity: str) -> Explanation:
    """Template explanation for a severity. Unknown severities use medium."""
    return FALLBACK_TEMPLATES.get(str(severity).lower(), FALLBACK_TEMPLATES[Severity.MEDIUM.value])
