"""Prompt templates for transcript extraction and recaps."""

from __future__ import annotations

EXTRACTION_SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts action items from meeting transcripts. "
    "Always return valid JSON only, no additional text."
)

EXTRACTION_PROMPT = """You are an assistant that extracts action items from meeting transcripts.

Given the following transcript, extract all action items and format them as JSON.

For each action item, provide:
- title: A concise, actionable title (max 100 chars)
- description: Detailed description with context from the transcript
- assignee: Person responsible (if mentioned, otherwise null)
- priority: "high", "medium", or "low" based on urgency and importance
- dueDate: ISO date string (YYYY-MM-DD) if deadline mentioned, otherwise null

Prioritize items as:
- "high": Urgent items with deadlines or critical blockers
- "medium": Important items without immediate urgency
- "low": Nice-to-have items or follow-ups

Return ONLY valid JSON in this format:
{{
  "actionItems": [
    {{
      "title": "...",
      "description": "...",
      "assignee": "..." or null,
      "priority": "high" | "medium" | "low",
      "dueDate": "YYYY-MM-DD" or null
    }}
  ]
}}

Transcript:
{transcript}

Summary (if available):
{summary}"""

RECAP_SYSTEM_PROMPT = (
    "You are an expert RevOps + GTM meeting note-taker. Generate Slack-friendly recaps "
    "in emoji-led format. Return ONLY the Slack recap, no other content."
)

RECAP_PROMPT = """You are an expert RevOps + GTM meeting note-taker. Convert messy meeting transcripts into a Slack-friendly recap in a specific emoji-led format.

Inputs
- Transcript: {transcript}
- Summary: {summary}

Step 1: Extract action items

From the transcript, identify explicit and implied action items. Each action item should include:
- What needs to be done (clear verb)
- Who owns it (person/team mentioned; if unclear, infer most likely owner and mark "(inferred)")
- Any key details (tools, objects, thresholds, dependencies, timelines)

Only include action items that are actually discussed.

Step 2: Slack recap (short + scannable)

Produce a Slack recap using this exact style:
- Use emoji headers per project/theme (2-4 sections max).
- Under each header: short bullets, each starting with an @Owner -> action format.
- Keep each bullet to one line when possible.
- Include key numbers/thresholds when mentioned (e.g., "last 90 days", "$20k ARR", "400 accounts").
- If something is a decision, mark it implicitly in the phrasing (e.g., "-> Proceed with...").

Slack recap structure

:emoji: Section Title
@Owner -> action
@Owner -> action

(Repeat for each section.)

Output format

Return ONLY the Slack Recap section. No extra commentary. No Linear issues."""

NO_SUMMARY = "Not available"


def build_extraction_prompt(transcript: str, summary: str | None = None) -> str:
    return EXTRACTION_PROMPT.format(transcript=transcript, summary=summary or NO_SUMMARY)


def build_recap_prompt(transcript: str, summary: str | None = None) -> str:
    return RECAP_PROMPT.format(transcript=transcript, summary=summary or NO_SUMMARY)
