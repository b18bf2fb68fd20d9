# rag/prompt.py - The message list sent to the chat model
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from config import CONTEXT_LABEL, QUESTION_LABEL
from rag.models import ChatTurn
from rag.tokens import estimate_tokens


@dataclass(frozen=True)
class PromptAssembly:
    """System prompt, trimmed history and the final user turn carrying the context."""

    system_prompt: str
    turns: Tuple[ChatTurn, ...]
    user_content: str

    def estimated_tokens(self) -> int:
        return (
            estimate_tokens(self.system_prompt)
            + sum(estimate_tokens(turn.content) for turn in self.turns)
            + estimate_tokens(self.user_content)
        )

    def to_messages(self) -> List[BaseMessage]:
        messages: List[BaseMessage] = [SystemMessage(content=self.system_prompt)]
        for turn in self.turns:
            if turn.role == "assistant":
                messages.append(AIMessage(content=turn.content))
            else:
                messages.append(HumanMessage(content=turn.content))
        messages.append(HumanMessage(content=self.user_content))
        return messages


def build_user_content(context: str, query: str) -> str:
    return f"{CONTEXT_LABEL}\n{context}\n\n{QUESTION_LABEL}{query}"


def build_prompt(system_prompt: str, history: Sequence[ChatTurn], context: str, query: str) -> PromptAssembly:
    return PromptAssembly(
        system_prompt=system_prompt,
        turns=tuple(history),
        user_content=build_user_content(context, query),
    )
