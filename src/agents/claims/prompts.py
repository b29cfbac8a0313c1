"""Prompt for inferring claims from free text when no itemized claims exist."""

CLAIM_INFERENCE_USER_PROMPT = """## Case
{case_context}

## Party statement
\"\"\"
{statement}
\"\"\"

## Claim-related facts already extracted
{claim_facts}

## Task
Identify the specific demands this party is making. For each claim give:
- type: one of damages, breach, performance, refund, compensation, other
- description: what is being demanded
- amount: the money figure, as a number, when one is stated
- basis: the factual or contractual ground relied on
- supportingFactIds: ids of the extracted facts above that support it

Return a JSON array of 1 to 5 claims:
[
  {{
    "id": "claim_1",
    "type": "refund",
    "description": "...",
    "amount": 2400.0,
    "basis": "...",
    "supportingFactIds": ["claimant_fact_2"]
  }}
]"""
