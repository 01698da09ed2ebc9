"""
Closed value sets used across the transcript pipeline.

Columns built with ``enum_column`` store the enum's string value and reject
anything outside the set when a row is written, so a bad value cannot
enter the database from any caller.
"""

import enum

from sqlalchemy import Enum as SAEnum


class Modality(str, enum.Enum):
    VOICE = "voice"
    TEXT = "text"


class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class TurnRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class UserRole(str, enum.Enum):
    LEARNER = "learner"
    SUPERVISOR = "supervisor"


class FlagType(str, enum.Enum):
    # Misuse categories
    JAILBREAK = "jailbreak"
    INAPPROPRIATE = "inappropriate"
    OFF_TOPIC = "off-topic"
    PII_SHARING = "pii-sharing"
    SYSTEM_GAMING = "system-gaming"
    ROLE_CONFUSION = "role-confusion"
    PROMPT_LEAKAGE = "prompt-leakage"
    # Consistency categories (need a scenario prompt to judge against)
    CHARACTER_BREAK = "character-break"
    BEHAVIOR_OMISSION = "behavior-omission"
    UNAUTHORIZED_ELEMENTS = "unauthorized-elements"
    DIFFICULTY_MISMATCH = "difficulty-mismatch"
    # Bookkeeping
    CLEAN_AUDIT = "clean-audit"
    USER_FEEDBACK = "user-feedback"


MISUSE_FLAG_TYPES = (
    FlagType.JAILBREAK,
    FlagType.INAPPROPRIATE,
    FlagType.OFF_TOPIC,
    FlagType.PII_SHARING,
    FlagType.SYSTEM_GAMING,
    FlagType.ROLE_CONFUSION,
    FlagType.PROMPT_LEAKAGE,
)

CONSISTENCY_FLAG_TYPES = (
    FlagType.CHARACTER_BREAK,
    FlagType.BEHAVIOR_OMISSION,
    FlagType.UNAUTHORIZED_ELEMENTS,
    FlagType.DIFFICULTY_MISMATCH,
)


class FlagSeverity(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# Higher sorts first in supervisor listings
SEVERITY_RANK = {
    FlagSeverity.CRITICAL: 3,
    FlagSeverity.WARNING: 2,
    FlagSeverity.INFO: 1,
}


class FlagSource(str, enum.Enum):
    EVALUATION = "evaluation"
    ANALYSIS = "analysis"
    USER_FEEDBACK = "user-feedback"


class FlagStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class FeedbackCategory(str, enum.Enum):
    AI_GUIDANCE_CONCERN = "ai-guidance-concern"
    VOICE_TECHNICAL_ISSUE = "voice-technical-issue"
    CONTENT_ISSUE = "content-issue"
    OTHER = "other"


def enum_column(enum_cls):
    """Column type storing ``enum_cls`` values as validated strings."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        name=f"{enum_cls.__name__.lower()}_enum",
    )
