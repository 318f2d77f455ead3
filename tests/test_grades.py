import pytest

from discogs_preview.grades import GRADE_ABBR, GRADE_LABELS, grade_rank, is_vg_plus_or_better


@pytest.mark.parametrize("label", [
    "Mint (M)", "Near Mint (NM or M-)", "Very Good Plus (VG+)",
])
def test_vg_plus_or_better_true(label):
    assert is_vg_plus_or_better(label)


@pytest.mark.parametrize("label", [
    "Very Good (VG)", "Good Plus (G+)", "Good (G)", "Fair (F)", "Poor (P)",
    "Generic", "", None,
])
def test_vg_plus_or_better_false(label):
    assert not is_vg_plus_or_better(label)


def test_ranks_are_total_and_ordered():
    assert [grade_rank(g) for g in GRADE_LABELS] == list(range(1, 9))
    assert grade_rank("Not Graded") is None


def test_every_grade_has_abbreviation():
    assert set(GRADE_ABBR) == set(GRADE_LABELS)
    assert GRADE_ABBR["Near Mint (NM or M-)"] == "NM-"
