from discogs_preview.matcher import TrackFilter, tracklist_contains, words_contain


def _tracks(*titles):
    return [{"title": t, "type_": "track"} for t in titles]


def test_short_name_exact_match():
    tracklist = _tracks("Intro", "Ok", "Outro")
    assert tracklist_contains(tracklist, "Ok")
    assert tracklist_contains(tracklist, "OK")
    assert tracklist_contains(tracklist, "ok")


def test_short_name_is_not_a_substring_match():
    assert not tracklist_contains(_tracks("Longer Track Name"), "Lo")
    assert not tracklist_contains(_tracks("Longer Track Name", "Okay Fine"), "Ok")


def test_short_name_ignores_punctuation():
    assert tracklist_contains(_tracks("O.K."), "Ok")


def test_single_character_needle_rejected():
    assert not tracklist_contains(_tracks("X"), "X")
    assert not tracklist_contains(_tracks("A"), "a!")


def test_word_containment_either_direction():
    assert tracklist_contains(_tracks("Blue Monday Remix"), "Blue Monday")
    assert tracklist_contains(_tracks("Blue Monday"), "Blue Monday '88 Remix")


def test_prefix_of_single_word_does_not_match():
    assert not tracklist_contains(_tracks("Firestarter"), "Fire")


def test_fuzzy_spelling_variants_match():
    assert tracklist_contains(_tracks("Midnite City"), "Midnight City")
    assert tracklist_contains(_tracks("Saturday Night Fever"), "Saturday Nite")


def test_headings_skipped_and_missing_type_is_track():
    tracklist = [
        {"title": "Blue Monday", "type_": "heading"},
        {"title": "Ceremony"},
    ]
    assert not tracklist_contains(tracklist, "Blue Monday")
    assert tracklist_contains(tracklist, "Ceremony")


def test_empty_titles_skipped():
    assert not tracklist_contains([{"title": "!!!"}, {"title": None}], "Song Name")


def test_empty_inputs():
    assert not tracklist_contains([], "Blue Monday")
    assert not tracklist_contains(None, "Blue Monday")
    assert not tracklist_contains(_tracks("Blue Monday"), "")
    assert not tracklist_contains(_tracks("Blue Monday"), None)


def test_words_contain():
    assert words_contain("blue monday remix", "blue monday")
    assert not words_contain("blue monday", "blue monday remix")


def test_track_filter_requires_track():
    f = TrackFilter("Ok")
    assert not f.accepts_everything
    assert f.accepts(_tracks("Ok"))
    assert not f.accepts(_tracks("Okay Fine"))
    assert not f.accepts(None)


def test_track_filter_accept_any():
    f = TrackFilter.accept_any()
    assert f.accepts_everything
    assert f.accepts(_tracks("Anything"))
    assert f.accepts(None)


def test_track_filter_empty_string_is_not_accept_any():
    f = TrackFilter("")
    assert not f.accepts_everything
    assert not f.accepts(_tracks("Anything"))
