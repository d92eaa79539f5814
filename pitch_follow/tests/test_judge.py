from conftest import obs

from pitch_follow.judge import MatchEngine, matches
from pitch_follow.notes import parse_pitch_name
from pitch_follow.pf_types import Decision, ExpectedNote


def expected(*names):
    return tuple(parse_pitch_name(n) for n in names)


def test_enharmonic_flat_matches_sharp():
    # expected Db4 vs played C#4
    assert MatchEngine().evaluate(obs("C#4"), expected("Db4")) is Decision.HIT
    for flat, sharp in [("Eb5", "D#5"), ("Gb3", "F#3"), ("Ab2", "G#2"), ("Bb4", "A#4")]:
        assert matches(obs(sharp), parse_pitch_name(flat))


def test_octave_must_match():
    m = MatchEngine()
    assert m.evaluate(obs("C5"), expected("C4")) is Decision.MISS
    assert m.evaluate(obs("C3"), expected("C4", "E4")) is Decision.MISS


def test_wrong_note_is_miss_and_does_not_satisfy():
    m = MatchEngine()
    assert m.evaluate(obs("D4"), expected("C4")) is Decision.MISS
    assert m.evaluate(obs("C4"), expected("C4")) is Decision.HIT


def test_any_note_of_a_chord_hits():
    chord = expected("C4", "E4", "G4")
    assert MatchEngine().evaluate(obs("E4"), chord) is Decision.HIT
    assert MatchEngine().evaluate(obs("G4"), chord) is Decision.HIT


def test_hit_is_terminal_until_next_position():
    m = MatchEngine()
    exp = expected("A4")
    assert m.evaluate(obs("A4"), exp) is Decision.HIT
    assert m.evaluate(obs("A4"), exp) is Decision.NO_DECISION
    assert m.evaluate(obs("B4"), exp) is Decision.NO_DECISION
    m.enter_position()
    assert m.evaluate(obs("A4"), exp) is Decision.HIT


def test_nothing_expected_is_no_decision():
    assert MatchEngine().evaluate(obs("C4"), ()) is Decision.NO_DECISION


def test_malformed_expected_notes_are_skipped():
    m = MatchEngine()
    broken = (None, ExpectedNote(letter="", accidental="", octave=4))
    assert m.evaluate(obs("C4"), broken) is Decision.NO_DECISION
    assert m.evaluate(obs("C4"), broken + expected("C4")) is Decision.HIT


def test_cents_do_not_affect_matching():
    assert MatchEngine().evaluate(obs("C4", cents=45), expected("C4")) is Decision.HIT
    assert MatchEngine().evaluate(obs("C4", cents=-45), expected("C4")) is Decision.HIT
