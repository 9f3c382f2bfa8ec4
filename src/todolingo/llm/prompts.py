# src/todolingo/llm/prompts.py

from __future__ import annotations

from ..core.ports import ChatMessage

TRANSLATION_MAX_TOKENS = 500
TRANSLATION_TEMPERATURE = 0.3

SUBTASKS_MAX_TOKENS = 300
SUBTASKS_TEMPERATURE = 0.7


def translation_system_prompt(target_language: str) -> str:
    return (
        f"You are a professional translator. Translate the following text to {target_language}. "
        "Return ONLY the translation without any additional text, explanations, or formatting. "
        "Preserve the structure if there are multiple lines or paragraphs."
    )


def translation_messages(text: str, target_language: str) -> list[ChatMessage]:
    return [
        {"role": "system", "content": translation_system_prompt(target_language)},
        {"role": "user", "content": text},
    ]


def subtasks_system_prompt(target_language: str) -> str:
    return (
        "You are a helpful assistant that breaks down tasks into actionable subtasks. "
        f"Always respond with valid JSON array format. Generate subtasks in {target_language} language."
    )


def subtasks_user_prompt(title: str, description: str, target_language: str) -> str:
    description_line = f"Description: {description}" if description else ""
    return f"""Break down the following task into 3-5 specific, actionable subtasks that would help complete the main task. Each subtask should be:
- Clear and specific
- Actionable (something you can actually do)
- Independent (can be completed on its own)
- Measurable (you'll know when it's done)

Main Task: {title}
{description_line}

IMPORTANT: Generate all subtasks in {target_language}. If the main task is in {target_language}, the subtasks should also be in {target_language}.

Return your response as a JSON array of strings, with each string being a subtask title in {target_language}. Do not include any other text or formatting.

Example format: ["Subtask 1", "Subtask 2", "Subtask 3"]"""


def subtasks_messages(title: str, description: str, target_language: str) -> list[ChatMessage]:
    return [
        {"role": "system", "content": subtasks_system_prompt(target_language)},
        {"role": "user", "content": subtasks_user_prompt(title, description, target_language)},
    ]
