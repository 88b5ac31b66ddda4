"""
Fixed instruction prompts sent to the generative model.
"""

REPORT_ANALYSIS_PROMPT = (
    "You are an expert in analyzing medical reports (especially for cancer "
    "and major diseases). Review the following uploaded report and generate "
    "a clear, paragraph-formatted, easy-to-understand treatment plan "
    "tailored for the patient. Avoid jargon and make it readable."
)

EXAMPLE_BOARD_JSON = """{
  "columns": [
    { "id": "todo", "title": "Todo" },
    { "id": "doing", "title": "Work in progress" },
    { "id": "done", "title": "Done" }
  ],
  "tasks": [
    { "id": "1", "columnId": "todo", "content": "Initial consultation with oncologist" },
    { "id": "2", "columnId": "doing", "content": "Radiation therapy session" },
    { "id": "3", "columnId": "done", "content": "Blood test completed" }
  ]
}"""

BOARD_PROMPT_TEMPLATE = """
Use the following treatment plan to generate a structured kanban task board. Divide it into:
- Todo: Tasks not started
- Doing: Tasks in progress
- Done: Completed tasks

Each task should be a brief actionable step. Output should be JSON in the structure below (no markdown or extra explanation):

{example}

Treatment plan: {narrative}
"""


def build_board_prompt(narrative: str) -> str:
    """Embed a treatment narrative in the board instruction."""
    return BOARD_PROMPT_TEMPLATE.format(example=EXAMPLE_BOARD_JSON, narrative=narrative)
