from ecofood.scoring.category import estimate_category
from ecofood.scoring.environment import score_environment
from ecofood.scoring.nutrition import score_nutrition, build_nutritional_profile
from ecofood.scoring.safety import score_safety

__all__ = [
    "estimate_category",
    "score_environment",
    "score_nutrition",
    "build_nutritional_profile",
    "score_safety",
]
