"""SkillWise API."""
