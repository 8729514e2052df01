"""Base model and enumeration helpers shared by every wizard document."""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_SEPARATORS = re.compile(r"[\s_\-]")


class WizardModel(BaseModel):
    """Documents exchanged with the generative backend and kept in stage data.

    Serialized camelCase (the backend's JSON dialect), populated by either the
    camelCase alias or the Python attribute name. Unknown keys are ignored.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _normalize(value: str) -> str:
    return _SEPARATORS.sub("", value).lower()


class LenientEnum(StrEnum):
    """StrEnum that also accepts other casings and separators ("Human in loop")."""

    @classmethod
    def _missing_(cls, value: object) -> LenientEnum | None:
        if not isinstance(value, str):
            return None
        wanted = _normalize(value)
        for member in cls:
            if _normalize(member.value) == wanted:
                return member
        return None
