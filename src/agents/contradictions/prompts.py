"""Prompt for contradiction detection."""

CONTRADICTION_USER_PROMPT = """## Case
{case_context}

## Claimant's statement
\"\"\"
{claimant_statement}
\"\"\"

## Respondent's statement
\"\"\"
{respondent_statement}
\"\"\"

## Disputed facts
{disputed_facts}

## Timeline
{timeline}

## Task
Identify direct contradictions between the two accounts: places where both cannot be true.
Differences of emphasis or interpretation are not contradictions.

For each contradiction give:
- topic
- claimantClaim / respondentClaim: what each party asserts
- severity: "minor" (peripheral detail), "moderate" (relevant but not decisive) or "major" (goes to the heart of the dispute)
- analysis: which account the evidence or timeline supports, if either
- caseImpact: how resolving it would affect the outcome

Return one JSON object:
{{
  "contradictions": [
    {{
      "id": "contradiction_1",
      "topic": "...",
      "claimantClaim": "...",
      "respondentClaim": "...",
      "severity": "major",
      "analysis": "...",
      "relatedFactIds": ["claimant_fact_2", "respondent_fact_1"],
      "caseImpact": "..."
    }}
  ],
  "summary": "One or two sentences on the overall pattern."
}}
Return an empty contradictions list if the accounts do not contradict each other."""
