# src/taskmind/llm/prompts.py

from __future__ import annotations

from ..store.models import TeamMember

SINGLE_TURN_SYSTEM_PROMPT = """
You are a task classification module for a team task manager.
You decide whether one logged chat exchange describes actionable work
that should become a task. Always respond with valid JSON only.
""".strip()

SINGLE_TURN_USER_TEMPLATE = """
Logged exchange:
User: "{user_input}"
Assistant: "{ai_response}"

Available Team Members:
{roster}

Respond with a JSON object:
- "isTask": boolean (true only if the user asks for work to be done)
- "confidence": number between 0 and 1
- "reasoning": short explanation of the decision
- "taskData": object or null. When isTask is true include:
    "title" (concise, max 100 chars), "description", "priority" (low|medium|high),
    "assignedTo" (exact name of the most suitable team member, or null),
    "tags" (array of strings), "dueDate" (ISO date string or null)
""".strip()

MULTI_TURN_SYSTEM_PROMPT = """
You are a conversational AI task manager. Your job is to:
1. Have natural conversations with users
2. Detect when they want to create a task (keywords: "create task", "add task", "new task", or describing work to be done)
3. Gather information conversationally (title, description, priority, etc.)
4. Only create tasks when you have enough information OR user confirms

Respond with JSON containing:
- "shouldCreateTask": boolean (true only if user clearly wants to create a task AND you have enough info)
- "response": string (your conversational response to the user)
- "taskData": object (if shouldCreateTask is true, include: title, description, priority, tags)
- "needsMoreInfo": boolean (true if you need clarification)

Priority and tags are OPTIONAL - if not specified by user, decide yourself based on context.
""".strip()

ASSIGNMENT_SYSTEM_PROMPT = "You assign tasks to team members based on skills. Respond with JSON only."

ASSIGNMENT_USER_TEMPLATE = """
Given this task: {task_json}

Available team members:
{roster}

Return JSON with the best "assignedTo" (exact name match) based on skills and availability.
""".strip()


def format_roster(roster: list[TeamMember]) -> str:
    if not roster:
        return "(no team members)"
    lines = []
    for m in roster:
        skills = ", ".join(m.skills) if m.skills else "-"
        lines.append(
            f"- {m.name}: Skills: {skills}, Availability: {m.availability.value}, Workload: {m.current_workload}"
        )
    return "\n".join(lines)
