from datetime import date

from shared import daily_cycle


def test_today_is_iso_date():
    assert daily_cycle.today() == date.today().isoformat()


def test_effective_counter_same_day_keeps_value():
    assert daily_cycle.effective_counter("2024-05-10", 4, "2024-05-10") == 4


def test_effective_counter_resets_on_new_day():
    assert daily_cycle.effective_counter("2024-05-09", 6, "2024-05-10") == 0


def test_effective_counter_handles_missing_values():
    assert daily_cycle.effective_counter(None, 3, "2024-05-10") == 0
    assert daily_cycle.effective_counter("2024-05-10", None, "2024-05-10") == 0


def test_effective_vouchers_defaults_all_tiers():
    assert daily_cycle.effective_vouchers(None, None, "2024-05-10") == {"v9": False, "v19": False}


def test_effective_vouchers_same_day_merges_stored_flags():
    vouchers = daily_cycle.effective_vouchers("2024-05-10", {"v9": True}, "2024-05-10")
    assert vouchers == {"v9": True, "v19": False}


def test_effective_vouchers_stale_map_is_not_reused():
    vouchers = daily_cycle.effective_vouchers("2024-05-09", {"v9": True, "v19": True}, "2024-05-10")
    assert vouchers == {"v9": False, "v19": False}
