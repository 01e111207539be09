from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

DEFAULT_MODEL = "gpt-4o-mini"
MAX_COMPLETIONS = 10

# A single exclusion entry: compiled regex, literal string, or an unset slot
ExclusionPattern = Optional[Union[re.Pattern, str]]


class ChatMessage(BaseModel):
    role: str = Field(..., description="Author of the message (system/user)")
    content: str = Field(..., description="Message text")


class CompletionRequest(BaseModel):
    """Everything needed to open one streaming chat completion."""

    prompt: Union[str, List[ChatMessage]]
    model: Optional[str] = None
    number: int = Field(default=1, description="Completion count, clamped to 1..10")
    api_key: str
    api_endpoint: str

    @field_validator("number")
    @classmethod
    def clamp_number(cls, value: int) -> int:
        return max(1, min(value, MAX_COMPLETIONS))

    def messages(self) -> List[Dict[str, str]]:
        if isinstance(self.prompt, list):
            return [message.model_dump() for message in self.prompt]
        return [{"role": "user", "content": self.prompt}]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model or DEFAULT_MODEL,
            "messages": self.messages(),
            "n": self.number,
            "stream": True,
        }


class ScriptExplanationPair(BaseModel):
    script: str = Field(default="", description="Command body, empty if none")
    explanation: str = Field(default="", description="Remaining response text")

    @property
    def has_script(self) -> bool:
        return bool(self.script)
