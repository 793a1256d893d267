"""Legacy field-name priority lists, expressed as data.

Each canonical field is filled from the first non-null candidate path;
listing the canonical name first keeps reconciliation idempotent.
"""

from fieldops.lib.access.scope import AC_REFERENCE_FIELDS
from fieldops.lib.partitioning.registry import EntityKind

AC_ID_FIELDS: tuple[str, ...] = AC_REFERENCE_FIELDS

BOOTH_ID_FIELDS: tuple[str, ...] = ("booth_id", "boothId", "boothCode")

FIELD_ALIASES: dict[EntityKind, dict[str, tuple[str, ...]]] = {
    EntityKind.VOTERS: {
        "voterID": ("voterID", "voterId", "voter_id"),
    },
    EntityKind.SURVEY_RESPONSES: {
        "respondentVoterId": ("respondentVoterId", "voterId", "voterID", "voter_id"),
        "respondentName": ("respondentName", "voterName"),
        "formId": ("formId", "surveyId", "form_id"),
        "answers": ("answers", "responses"),
        "submittedAt": ("submittedAt", "createdAt", "syncedAt"),
    },
    EntityKind.MOBILE_ANSWERS: {
        "answerValue": ("answerValue", "answer"),
        "submittedAt": ("submittedAt", "createdAt", "syncedAt"),
    },
    EntityKind.AGENT_ACTIVITIES: {
        "submittedAt": ("submittedAt", "createdAt", "loginTime"),
    },
}

# Canonical fields that default to a value when no candidate is present.
FIELD_DEFAULTS: dict[EntityKind, dict[str, object]] = {
    EntityKind.SURVEY_RESPONSES: {"answers": []},
}

LOCATION_KINDS: frozenset[EntityKind] = frozenset({EntityKind.MOBILE_ANSWERS, EntityKind.AGENT_ACTIVITIES})
