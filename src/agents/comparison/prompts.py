"""Prompt for comparing the two parties' extracted facts."""

FACT_COMPARISON_USER_PROMPT = """## Case
{case_context}

## Facts extracted from the claimant's statement
{claimant_facts}

## Facts extracted from the respondent's statement
{respondent_facts}

## Task
Compare the two sets of facts.

Disputed facts are matters on which the parties' positions conflict. For each:
- topic: the matter in dispute
- claimantPosition / respondentPosition: each side's position, in one or two sentences
- relevantEvidence: evidence ids bearing on it
- materialityScore: 0 to 1, how much the outcome of the case turns on it
- analysis: one sentence on why it matters

Undisputed facts are matters both parties accept, expressly or by not contesting them. For each:
- fact: the agreed matter
- agreedBy: which parties' statements establish it ("claimant", "respondent")
- supportingEvidence: evidence ids, if any
- materialityScore: 0 to 1

Return one JSON object with 3 to 8 entries in each list:
{{
  "disputed": [
    {{
      "id": "dispute_1",
      "topic": "...",
      "claimantPosition": "...",
      "respondentPosition": "...",
      "relevantEvidence": ["ev_1"],
      "materialityScore": 0.8,
      "analysis": "..."
    }}
  ],
  "undisputed": [
    {{
      "id": "agreed_1",
      "fact": "...",
      "agreedBy": ["claimant", "respondent"],
      "supportingEvidence": [],
      "materialityScore": 0.5
    }}
  ]
}}"""
