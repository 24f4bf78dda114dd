"""Skills module: marketplace offers and requests, reviews, skill of the month."""

from skillwise.skills.models import SKILLS_TABLES_CQL, SkillPost, SkillPricing
from skillwise.skills.service import SkillsService


__all__ = [
    "SKILLS_TABLES_CQL",
    "SkillPost",
    "SkillPricing",
    "SkillsService",
]
