"""
Answer composer: turns retrieved context into LLM prompts.

Never raises: a provider failure becomes a fixed apology string, logged
at ERROR. Model and sampling parameters are fixed per method.
"""

import logging

from .llm import ChatProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.1-8b-instant"

EMPTY_REPLY = "I couldn't generate a response. Please try again."
APOLOGY = "I'm experiencing technical difficulties. Please try again later."
CODE_EMPTY_REPLY = "Code analysis unavailable."
CODE_APOLOGY = "Failed to analyze code."

ANSWER_SYSTEM_PROMPT = (
    "You are an AI study assistant specializing in computer science topics, "
    "placement preparation, and code analysis.\n\n"
    "You have access to the user's personal study materials, notes, GitHub "
    "repositories, and placement questions. Use the provided context to give "
    "accurate, detailed answers.\n\n"
    "When referencing sources, cite which source the information came from "
    "(the document, question or repository).\n\n"
    "Keep answers focused, practical, and educational."
)

CHAT_SYSTEM_PROMPT = (
    "You are an AI study assistant for a computer science student. You have "
    "access to their notes, GitHub projects, and placement questions.\n\n"
    "{context}"
    "Be helpful, educational, and reference the user's materials when relevant. "
    "Cite which source the information came from."
)

CODE_SYSTEM_PROMPT = (
    "You are a code analysis expert. Analyze the provided code and explain its "
    "functionality, architecture, and key components."
)


class AnswerComposer:
    # (temperature, max_tokens)
    ANSWER_PARAMS = (0.7, 1000)
    CHAT_PARAMS = (0.7, 800)
    CODE_PARAMS = (0.5, 600)

    def __init__(self, llm: ChatProvider, model: str = DEFAULT_MODEL):
        self.llm = llm
        self.model = model

    async def _complete(self, messages: list[dict], params: tuple[float, int]) -> str:
        temperature, max_tokens = params
        return await self.llm.complete_chat(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    async def answer(self, query: str, context: str) -> str:
        user_prompt = (
            f"Question: {query}\n\n"
            f"Context from user's materials:\n{context}\n\n"
            "Please provide a comprehensive answer based on the context provided."
        )
        messages = [
            {"role": "system", "content": ANSWER_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]
        try:
            return await self._complete(messages, self.ANSWER_PARAMS) or EMPTY_REPLY
        except Exception as e:
            logger.error("LLM answer failed: %s", e)
            return APOLOGY

    async def chat(self, history: list[dict], context: str = "") -> str:
        """Continue a conversation. history is [{role, content}, ...], oldest first."""
        section = f"Current context:\n{context}\n\n" if context else ""
        messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT.format(context=section)}]
        messages += [{"role": m["role"], "content": m["content"]} for m in history]
        try:
            return await self._complete(messages, self.CHAT_PARAMS) or EMPTY_REPLY
        except Exception as e:
            logger.error("LLM chat failed: %s", e)
            return APOLOGY

    async def explain_code(self, code: str, language: str) -> str:
        messages = [
            {"role": "system", "content": CODE_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Please analyze this {language} code and explain its purpose and structure:\n\n{code}",
            },
        ]
        try:
            return await self._complete(messages, self.CODE_PARAMS) or CODE_EMPTY_REPLY
        except Exception as e:
            logger.error("Code analysis failed: %s", e)
            return CODE_APOLOGY
