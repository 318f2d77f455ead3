from discogs_preview.cache import FilterKey
from discogs_preview.pipeline import FilteredView, SearchResult
from discogs_preview.pricing import AggregateStats, FilteredStats, MatchDetail
from discogs_preview.report import filter_label, fmt_price, format_filtered, format_result


def _match(title, lowest, count):
    return MatchDetail(
        master_id=None, release_id=1, title=title, artists="Blueless", year=2021,
        thumb=None, format="LP, Album", sell_url="u", num_for_sale=count,
        lowest_price=lowest, lowest_grade=None, median_price=None, vg_plus_price=None,
    )


def test_fmt_price():
    assert fmt_price(3.5) == "$3.50"
    assert fmt_price(None) == "—"


def test_filter_labels():
    assert filter_label(FilterKey()) == "All Vinyl - All Conditions Worldwide"
    assert filter_label(FilterKey(us_only=True)) == "All Vinyl - Ships from US"
    assert filter_label(FilterKey(vg_plus=True)) == "All Vinyl - VG+ or better"


def test_format_result_single_match_has_no_list():
    result = SearchResult(
        query="q", stats=AggregateStats(num_for_sale=0), master_id=None,
        release_id=1, title="Ok", artists="Blueless", year=None, thumb=None,
        sell_url="https://www.discogs.com/sell/release/1?ev=rb", match_count=1,
    )
    text = format_result(result)
    assert text.startswith("Blueless - Ok (?)")
    assert "Copies for sale: 0" in text
    assert "Median price:    —" in text
    assert "Releases containing" not in text


def test_format_result_lists_matches():
    matches = (_match("Ok", 2.0, 3), _match("Ok (Remixes)", 9.0, 1))
    result = SearchResult(
        query="q", stats=AggregateStats(num_for_sale=4, lowest_price=2.0),
        master_id=None, release_id=1, title="Ok", artists="Blueless", year=2021,
        thumb=None, sell_url="u", match_count=2, matches=matches,
    )
    text = format_result(result)
    assert "  [0] Blueless - Ok (2021) · LP, Album: $2.00, 3 for sale" in text
    assert "  [1] Blueless - Ok (Remixes) (2021) · LP, Album: $9.00, 1 for sale" in text


def test_format_filtered_selected():
    view = FilteredView(
        key=FilterKey(vg_plus=True, selected=1),
        stats=FilteredStats(1, 1, 5.0, 5.0),
        display=AggregateStats(num_for_sale=1, lowest_price=5.0, median_price=5.0),
        link="https://www.discogs.com/sell/release/2?ev=rb&sort=price%2Casc",
    )
    lines = format_filtered(view).splitlines()
    assert lines[0] == "All Vinyl - VG+ or better (match #1)"
    assert "Lowest price:    $5.00" in lines
    assert lines[-1].startswith("View filtered copies: https://www.discogs.com/")
