from race_weekend.models import Car, SessionEntrant, SessionType, StaticChampionship
from race_weekend.rules import (
    best_lap_in_results_key,
    best_lap_key,
    reverse_entrants,
    session_tie_break_key,
    sort_drivers_with_no_championship_races_to_back_of_grid,
    sort_drivers_with_no_time_to_back_of_grid,
    total_time_key,
)
from race_weekend.schemas import SessionEvent, SessionLap, SessionResultRow, SessionResults


def _entrant(guid, best_lap=0, total_time=0, laps=0, crashes=0, cuts=0):
    lap_list = [SessionLap(driver_guid=guid, car_model="ks_car", lap_time=best_lap or 60000) for _ in range(laps)]
    if cuts:
        lap_list[0].cuts = cuts
    events = [SessionEvent(type="COLLISION_WITH_ENV", driver_guid=guid, car_model="ks_car") for _ in range(crashes)]
    row = SessionResultRow(driver_guid=guid, car_model="ks_car", best_lap=best_lap, total_time=total_time)
    return SessionEntrant(
        car=Car(driver_guid=guid, driver_name=guid, model="ks_car"),
        class_id="A",
        entrant_result=row,
        session_results=SessionResults(result=[row], laps=lap_list, events=events),
    )


def _guids(entrants):
    return [e.guid for e in entrants]


def test_reverse_none_is_noop():
    entrants = [_entrant(g) for g in "ABCD"]
    reverse_entrants(0, entrants)
    assert _guids(entrants) == ["A", "B", "C", "D"]


def test_reverse_first_n_leaves_tail():
    entrants = [_entrant(g) for g in "ABCD"]
    reverse_entrants(2, entrants)
    assert _guids(entrants) == ["B", "A", "C", "D"]


def test_reverse_all_and_beyond_length_match():
    all_reversed = [_entrant(g) for g in "ABCD"]
    reverse_entrants(-1, all_reversed)
    clamped = [_entrant(g) for g in "ABCD"]
    reverse_entrants(10, clamped)
    assert _guids(all_reversed) == ["D", "C", "B", "A"]
    assert _guids(clamped) == _guids(all_reversed)


def test_zero_best_lap_never_outranks_a_lap_time():
    no_lap = _entrant("slow", best_lap=0)
    crasher = _entrant("crasher", best_lap=95000, laps=2, crashes=4, cuts=3)
    assert best_lap_key(crasher) < best_lap_key(no_lap)


def test_equal_best_laps_break_tie_on_crashes_then_cuts():
    clean = _entrant("clean", best_lap=90000, laps=2)
    cutter = _entrant("cutter", best_lap=90000, laps=2, cuts=2)
    crasher = _entrant("crasher", best_lap=90000, laps=2, crashes=1)
    ordered = sorted([crasher, cutter, clean], key=best_lap_key)
    assert _guids(ordered) == ["clean", "cutter", "crasher"]


def test_zero_best_lap_entrants_are_tied():
    a = _entrant("a", best_lap=0, laps=1, crashes=3)
    b = _entrant("b", best_lap=0)
    assert best_lap_key(a) == best_lap_key(b)


def test_total_time_prefers_more_laps():
    more_laps = _entrant("more", total_time=700000, laps=11)
    fewer_laps = _entrant("fewer", total_time=600000, laps=10)
    quicker = _entrant("quicker", total_time=590000, laps=10)
    ordered = sorted([fewer_laps, quicker, more_laps], key=total_time_key)
    assert _guids(ordered) == ["more", "quicker", "fewer"]


def test_total_time_includes_penalties():
    penalised = _entrant("penalised", total_time=600000, laps=10)
    penalised.entrant_result.penalty_time = 20000
    clean = _entrant("clean", total_time=610000, laps=10)
    assert total_time_key(clean) < total_time_key(penalised)


def test_tie_break_depends_on_session_type():
    assert session_tie_break_key(SessionType.RACE) is total_time_key
    assert session_tie_break_key(SessionType.QUALIFYING) is best_lap_key
    assert session_tie_break_key(SessionType.PRACTICE) is best_lap_key


def test_best_lap_in_results_key():
    laps = {"a": 90000, "b": 0}
    assert best_lap_in_results_key(laps, "a") < best_lap_in_results_key(laps, "b")
    assert best_lap_in_results_key(laps, "b") == best_lap_in_results_key(laps, "missing")


def test_no_time_moves_to_back_without_reordering_finishers():
    entrants = [
        _entrant("dnf1", total_time=0),
        _entrant("p2", total_time=500000),
        _entrant("dnf2", total_time=0),
        _entrant("p1", total_time=400000),
    ]
    sort_drivers_with_no_time_to_back_of_grid(entrants)
    assert _guids(entrants) == ["p2", "p1", "dnf1", "dnf2"]


def test_no_championship_races_moves_to_back():
    championship = StaticChampionship(attendance={"a": 2, "c": 1})
    entrants = [_entrant("b"), _entrant("a"), _entrant("d"), _entrant("c")]
    sort_drivers_with_no_championship_races_to_back_of_grid(championship, entrants)
    assert _guids(entrants) == ["a", "c", "b", "d"]
