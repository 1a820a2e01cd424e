from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from wrapped.stats.models import CommitStyle
from wrapped.stats.models import TopLanguage


class StatsResponse(BaseModel):
    """Wrapped statistics payload for the authenticated user.

    Serialized with camelCase keys (`auditRatio`, `maxStreak`, ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str
    year: int
    category: CommitStyle
    audit_ratio: str
    max_streak: int
    total_commits: int
    created_this_year: int
    followers: int
    top_languages: list[TopLanguage]
