"""Prompt for the comparative credibility assessment."""

CREDIBILITY_USER_PROMPT = """## Case
{case_context}

## Claimant's statement
\"\"\"
{claimant_statement}
\"\"\"

## Respondent's statement
\"\"\"
{respondent_statement}
\"\"\"

## Claimant's facts
{claimant_facts}

## Respondent's facts
{respondent_facts}

## Undisputed facts
{undisputed_facts}

## Contradictions
{contradictions}

## Evidence submitted
Claimant: {claimant_evidence_count} document(s)
Respondent: {respondent_evidence_count} document(s)

## Task
Assess how credible each party's account is. Score each factor from 0 to 1:
- evidenceSupport: how well documents back the account
- internalConsistency: whether the account agrees with itself
- externalConsistency: whether it agrees with undisputed facts and the other side's admissions
- specificity: concrete dates, amounts and details rather than generalities
- plausibility: whether events happened the way a reasonable person would expect

Credibility is about the account, not the person. Do not penalize a party for writing style.

Return one JSON object:
{{
  "claimant": {{
    "overall": 0.7,
    "factors": {{
      "evidenceSupport": 0.8,
      "internalConsistency": 0.7,
      "externalConsistency": 0.6,
      "specificity": 0.7,
      "plausibility": 0.7
    }},
    "reasoning": "...",
    "strengths": ["..."],
    "weaknesses": ["..."]
  }},
  "respondent": {{ "...": "same shape as claimant" }},
  "comparison": "One or two sentences comparing the two accounts."
}}"""
