"""Small numeric helpers shared by models and scoring code."""


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into the closed interval [low, high]."""
    return max(low, min(high, float(value)))
