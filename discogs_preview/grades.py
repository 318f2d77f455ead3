"""Discogs condition grades, best to worst."""

GRADE_LABELS = (
    "Mint (M)",
    "Near Mint (NM or M-)",
    "Very Good Plus (VG+)",
    "Very Good (VG)",
    "Good Plus (G+)",
    "Good (G)",
    "Fair (F)",
    "Poor (P)",
)

GRADE_ABBR = {
    "Mint (M)": "M",
    "Near Mint (NM or M-)": "NM-",
    "Very Good Plus (VG+)": "VG+",
    "Very Good (VG)": "VG",
    "Good Plus (G+)": "G+",
    "Good (G)": "G",
    "Fair (F)": "F",
    "Poor (P)": "P",
}

GRADE_RANK = {label: rank for rank, label in enumerate(GRADE_LABELS, start=1)}

VG_PLUS = "Very Good Plus (VG+)"
NEAR_MINT = "Near Mint (NM or M-)"
VG_PLUS_RANK = GRADE_RANK[VG_PLUS]


def grade_rank(label: str | None) -> int | None:
    if label is None:
        return None
    return GRADE_RANK.get(label)


def is_vg_plus_or_better(label: str | None) -> bool:
    rank = grade_rank(label)
    return rank is not None and rank <= VG_PLUS_RANK
