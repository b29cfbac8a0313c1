"""Prompts for per-party fact extraction.

Double braces are literal braces for ChatPromptTemplate.
"""

FACT_EXTRACTION_USER_PROMPT = """## Case
{case_context}

## Statement of the {party_label}
\"\"\"
{statement}
\"\"\"

## Evidence submitted by the {party_label}
{evidence}

## Task
List the material facts asserted in this statement. For each one give:
- statement: the fact, stated precisely and on its own
- category: one of event (something that happened), claim (relief being sought), \
admission (something conceded against the party's own interest), denial (an allegation \
being refuted), allegation (an accusation against the other party)
- date: the date given or implied (YYYY-MM-DD where exact), otherwise omit
- amount: any money figure tied to the fact, as a number
- supportingEvidence: ids of the evidence above that backs the fact
- confidence: 0 to 1, how sure you are the statement really asserts this
- context: a short note, only when the fact is unclear without it

Return a JSON array, 5 to 15 items depending on statement length:
[
  {{
    "id": "fact_1",
    "statement": "...",
    "category": "event",
    "date": "2024-03-01",
    "amount": 1500.0,
    "supportingEvidence": ["ev_1"],
    "confidence": 0.9,
    "context": "..."
  }}
]"""
