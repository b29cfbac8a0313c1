"""Prompt for timeline reconstruction."""

TIMELINE_USER_PROMPT = """## Case
{case_context}

## Claimant's statement
\"\"\"
{claimant_statement}
\"\"\"

{respondent_block}

## Documentary evidence
{evidence}

## Task
Build a chronological timeline of every event mentioned by either party or found in the evidence.
For each event give the date (YYYY-MM-DD where possible, otherwise a descriptive date such as \
"early March 2024"), what happened, the source ("claimant", "respondent" or "evidence"), \
the sourceId ("statement" or the evidence id), and whether the parties dispute it.
Events with no date at all go in undatedEvents.

Return one JSON object:
{{
  "events": [
    {{
      "id": "event_1",
      "date": "2024-01-15",
      "event": "...",
      "source": "claimant",
      "sourceId": "statement",
      "disputed": false,
      "details": "..."
    }}
  ],
  "startDate": "2024-01-15",
  "endDate": "2024-06-30",
  "undatedEvents": [
    {{
      "id": "undated_1",
      "event": "...",
      "source": "respondent",
      "sourceId": "statement",
      "disputed": true
    }}
  ]
}}
List 5 to 20 events, depending on how much happened."""

RESPONDENT_STATEMENT_BLOCK = """## Respondent's statement
\"\"\"
{statement}
\"\"\""""

NO_RESPONDENT_STATEMENT = "## Respondent's statement\nThe respondent has not submitted a statement."
