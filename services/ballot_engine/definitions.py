# services/ballot_engine/definitions.py
# Static copy and thresholds shared by the value-language helpers.
# Per-dimension framing text lives with each assessment's meta-dimensions.

BALANCED_SUMMARY = (
    "Your values are balanced across different perspectives, "
    "which means you likely weigh tradeoffs on a case-by-case basis."
)

# Percent (0-100) thresholds for the graduated spectrum labels
MODERATE_THRESHOLD = 58
STRONG_THRESHOLD = 70

IMPORTANCE_LABELS = [
    (3, "A little"),
    (7, "Moderately"),
    (10, "Strongly"),
]
