from enum import Enum
from typing import Optional, TypeVar

from rapidfuzz.distance import Levenshtein

from models import ExpenseCategory


E = TypeVar("E", bound=Enum)

SUGGESTION_CONFIDENCE = 0.8

# Checked in order; the first category with a keyword in the description wins.
CATEGORY_KEYWORDS: tuple[tuple[ExpenseCategory, tuple[str, ...]], ...] = (
    (
        ExpenseCategory.food,
        ("food", "restaurant", "cafe", "lunch", "dinner", "breakfast", "snack",
         "pizza", "burger", "maggi", "canteen"),
    ),
    (
        ExpenseCategory.transport,
        ("uber", "ola", "bus", "metro", "train", "auto", "taxi", "fuel", "petrol",
         "diesel"),
    ),
    (
        ExpenseCategory.entertainment,
        ("movie", "cinema", "game", "concert", "show", "netflix", "spotify",
         "youtube"),
    ),
    (
        ExpenseCategory.shopping,
        ("amazon", "flipkart", "clothes", "shoes", "shopping", "mall", "store"),
    ),
    (
        ExpenseCategory.education,
        ("book", "course", "fee", "tuition", "exam", "certification", "udemy",
         "coursera"),
    ),
    (
        ExpenseCategory.health,
        ("medicine", "doctor", "hospital", "pharmacy", "medical", "health"),
    ),
    (ExpenseCategory.rent, ("rent", "hostel", "accommodation", "pg")),
    (
        ExpenseCategory.utilities,
        ("electricity", "water", "internet", "wifi", "mobile", "recharge"),
    ),
    (
        ExpenseCategory.subscriptions,
        ("subscription", "premium", "pro", "plus", "monthly"),
    ),
    (
        ExpenseCategory.party,
        ("party", "club", "bar", "alcohol", "beer", "celebration"),
    ),
)


def suggest_category(description: str) -> ExpenseCategory:
    text = (description or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return ExpenseCategory.other


def resolve_choice(raw: object, enum_cls: type[E]) -> Optional[E]:
    """Map loosely typed input onto a closed enumeration.

    Accepts members, exact values in any case, underscores for hyphens, and
    a single typo when exactly one value is that close.
    """
    if raw is None or isinstance(raw, enum_cls):
        return raw
    text = str(raw).strip().lower().replace("_", "-").replace(" ", "-")
    if not text:
        return None
    values = {member.value: member for member in enum_cls}
    if text in values:
        return values[text]

    best_distance: Optional[int] = None
    best: list[E] = []
    for value, member in values.items():
        dist = int(Levenshtein.distance(text, value))
        if best_distance is None or dist < best_distance:
            best_distance = dist
            best = [member]
        elif dist == best_distance:
            best.append(member)

    if best_distance is not None and best_distance <= 1:
        if len(best) > 1:
            options = ", ".join(sorted(m.value for m in best))
            raise ValueError(f"'{raw}' is ambiguous; matches: {options}")
        return best[0]
    allowed = ", ".join(values)
    raise ValueError(f"'{raw}' is not one of: {allowed}")
