"""
Display helpers - human-readable labels for log lines and the CLI.
"""

from .constants import NO_WASTE_CATEGORY

_STATUS_LABELS = {
    "analyzing": "Analyzing Food...",
    "food_classified": "Reading Initial Weight...",
    "initial_ocr_complete": "Awaiting Final Weight...",
    "complete": "Processing Complete",
    "ai_error": "AI Processing Failed",
}


def status_label(status: str) -> str:
    """Label shown to the operator for a processing status."""
    return _STATUS_LABELS.get(str(status), "Unknown Status")


def format_weight(weight: float | None) -> str:
    """
    Format a weight in grams as kilograms.

    Args:
        weight: Weight in grams, or None

    Returns:
        String like "0.150kg", or "N/A" when the weight is missing
    """
    if weight is None:
        return "N/A"
    return f"{weight / 1000:.3f}kg"


def category_label(category: str | None) -> str:
    if not category:
        return "unknown"
    if category == NO_WASTE_CATEGORY:
        return "No Waste"
    return category.lower()
