"""
Prompt templates for contract type detection and tiered contract analysis.

The JSON shapes requested here are the only schema contract with the model;
json_decoder and models.narrow_analysis read exactly these keys.
"""
from analyzer.models import TIER_FREE, TIER_PREMIUM

CLASSIFICATION_SAMPLE_CHARS = 2000

SYSTEM_PROMPT = (
    "You are a contract analysis expert. You provide precise, structured analysis "
    "in JSON format only. Never include markdown formatting or extra text outside the JSON."
)

CLASSIFICATION_PROMPT_TEMPLATE = '''Analyze the following contract text and determine the type of contract it is.
Provide only the contract type as a single plain string (e.g., "Employment Agreement", "Non-Disclosure Agreement", "Sales Agreement", "Lease Agreement", etc.).
Do not include any JSON, quotes, or additional explanation. Just the type name.

Contract text:
{contract_text}'''

FREE_ANALYSIS_TEMPLATE = '''Analyze the following {contract_type} contract and provide:
1. A list of at least 5 potential risks for the party receiving the contract, each with a brief explanation and severity level (low, medium, high).
2. A list of at least 5 potential opportunities or benefits for the receiving party, each with a brief explanation and impact level (low, medium, high).
3. A brief summary of the contract in 2-3 sentences.
4. An overall score from 1 to 100, with 100 being the highest. This score represents the overall favorability of the contract for the receiving party based on the identified risks and opportunities.

Format your response as a JSON object with the following structure:
{{
  "risks": [{{"risk": "Risk description", "explanation": "Brief explanation", "severity": "low|medium|high"}}],
  "opportunities": [{{"opportunity": "Opportunity description", "explanation": "Brief explanation", "impact": "low|medium|high"}}],
  "summary": "Brief summary of the contract",
  "overallScore": 50
}}
'''

PREMIUM_ANALYSIS_TEMPLATE = '''Analyze the following {contract_type} contract and provide:
1. A list of at least 10 potential risks for the party receiving the contract, each with a brief explanation, severity level (low, medium, high) and a suggested alternative clause wording that removes or reduces the risk.
2. A list of at least 10 potential opportunities or benefits for the receiving party, each with a brief explanation, impact level (low, medium, high) and a suggested strategy to leverage it.
3. A comprehensive summary of the contract in 3-5 paragraphs, including key terms and conditions.
4. Recommendations for improving the contract from the receiving party's perspective.
5. The key clauses of the contract, each explained in plain language.
6. An assessment of the contract's legal compliance.
7. Negotiation points in priority order, each with the reasoning behind it.
8. The contract duration or term, including renewal terms, if applicable.
9. A summary of termination conditions, if applicable.
10. A breakdown of financial terms and of the compensation structure, if applicable.
11. Any performance metrics or KPIs mentioned, if applicable.
12. An analysis of the intellectual property clauses, if applicable.
13. An overall score from 1 to 100, with 100 being the highest. This score represents the overall favorability of the contract for the receiving party based on the identified risks and opportunities.

Format your response as a JSON object with the following structure:
{{
  "risks": [{{"risk": "Risk description", "explanation": "Brief explanation", "severity": "low|medium|high", "suggestedAlternative": "Alternative clause wording"}}],
  "opportunities": [{{"opportunity": "Opportunity description", "explanation": "Brief explanation", "impact": "low|medium|high", "suggestedAlternative": "How to leverage this opportunity"}}],
  "summary": "Comprehensive summary of the contract",
  "recommendations": ["Recommendation 1", "Recommendation 2"],
  "keyClauses": ["Clause 1: plain-language explanation", "Clause 2: plain-language explanation"],
  "legalCompliance": "Assessment of legal compliance",
  "negotiationPoints": ["Point 1 - reasoning", "Point 2 - reasoning"],
  "contractDuration": "Duration and renewal terms of the contract, if applicable",
  "terminationConditions": "Summary of termination conditions, if applicable",
  "overallScore": 50,
  "financialTerms": {{
    "description": "Overview of financial terms",
    "details": ["Detail 1", "Detail 2"]
  }},
  "compensationStructure": {{
    "baseSalary": "Base salary or fees, if applicable",
    "bonuses": "Bonus structure, if applicable",
    "equity": "Equity terms, if applicable",
    "otherBenefits": "Other benefits, if applicable"
  }},
  "performanceMetrics": ["Metric 1", "Metric 2"],
  "intellectualPropertyClauses": "Analysis of intellectual property clauses"
}}
'''

ANALYSIS_PROMPT_SUFFIX = '''
Important: Provide only the JSON object in your response, without any additional text or formatting.


Contract text:
{contract_text}'''

_TEMPLATES = {
    TIER_FREE: FREE_ANALYSIS_TEMPLATE,
    TIER_PREMIUM: PREMIUM_ANALYSIS_TEMPLATE,
}


def build_classification_prompt(contract_text: str) -> str:
    """Prompt asking for a bare contract type from the start of the text."""
    return CLASSIFICATION_PROMPT_TEMPLATE.format(
        contract_text=contract_text[:CLASSIFICATION_SAMPLE_CHARS]
    )


def build_analysis_prompt(contract_text: str, contract_type: str, tier: str) -> str:
    """
    Build the full-analysis prompt for a subscription tier.

    Args:
        contract_text: Full extracted text; never truncated.
        contract_type: Confirmed contract type.
        tier: TIER_FREE or TIER_PREMIUM.

    Returns:
        Prompt string.

    Raises:
        ValueError: If tier is unknown.
    """
    try:
        template = _TEMPLATES[tier]
    except KeyError:
        raise ValueError(f"Unknown tier: {tier}")

    return (
        template.format(contract_type=contract_type)
        + ANALYSIS_PROMPT_SUFFIX.format(contract_text=contract_text)
    )
