"""Typed views of AC-sharded entity documents.

Each entity kind has a model listing its known optional fields; anything
else lands in the model's extra-fields bag and round-trips untouched.
Field values stay loosely typed because stored documents span several
historical vintages. ``DOCUMENT_MODELS`` is the tag → model mapping of
the ``EntityDocument`` union.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from fieldops.lib.partitioning.registry import EntityKind


class BaseEntityDocument(BaseModel):
    """Fields common to every entity kind."""

    model_config = ConfigDict(extra="allow")

    id: Any = Field(default=None, alias="_id", description="Primary key")
    aci_id: Any = Field(default=None, description="Canonical AC key")
    aci_name: Any = Field(default=None, description="AC display name (null when no mapping exists)")
    booth_id: Any = Field(default=None, description="Structured booth id")
    boothname: Any = Field(default=None, description="Booth display name")
    boothno: Any = Field(default=None, description="Booth number")

    @property
    def extra_fields(self) -> dict[str, Any]:
        """Fields not modeled for this entity kind."""
        return dict(self.model_extra or {})

    def to_document(self) -> dict[str, Any]:
        """Dump back to the stored shape, keeping only fields that were present."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class VoterDocument(BaseEntityDocument):
    voterID: Any = None  # noqa: N815
    name: Any = None
    age: Any = None
    gender: Any = None
    mobile: Any = None
    doornumber: Any = None


class SurveyResponseDocument(BaseEntityDocument):
    respondentVoterId: Any = None  # noqa: N815
    respondentName: Any = None  # noqa: N815
    respondentAge: Any = None  # noqa: N815
    formId: Any = None  # noqa: N815
    answers: Any = None
    submittedAt: Any = None  # noqa: N815


class MobileAnswerDocument(BaseEntityDocument):
    questionId: Any = None  # noqa: N815
    answerValue: Any = None  # noqa: N815
    location: Any = None
    submittedAt: Any = None  # noqa: N815


class AgentActivityDocument(BaseEntityDocument):
    userId: Any = None  # noqa: N815
    loginTime: Any = None  # noqa: N815
    logoutTime: Any = None  # noqa: N815
    timeSpentMinutes: Any = None  # noqa: N815
    surveyCount: Any = None  # noqa: N815
    voterInteractions: Any = None  # noqa: N815
    location: Any = None
    submittedAt: Any = None  # noqa: N815


EntityDocument = VoterDocument | SurveyResponseDocument | MobileAnswerDocument | AgentActivityDocument

DOCUMENT_MODELS: dict[EntityKind, type[BaseEntityDocument]] = {
    EntityKind.VOTERS: VoterDocument,
    EntityKind.SURVEY_RESPONSES: SurveyResponseDocument,
    EntityKind.MOBILE_ANSWERS: MobileAnswerDocument,
    EntityKind.AGENT_ACTIVITIES: AgentActivityDocument,
}


def parse_document(entity_kind: EntityKind | str, document: dict[str, Any]) -> EntityDocument:
    """Validate a raw document into the typed view for its entity kind.

    Raises:
        ConfigurationError: If the entity kind is unknown.
    """
    model = DOCUMENT_MODELS[EntityKind.parse(entity_kind)]
    return model.model_validate(document)  # type: ignore[return-value]
