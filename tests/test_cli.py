import main


def test_assign_all_and_list(capsys):
    assert main.main(["--assign-all", "--list"]) == 0
    out = capsys.readouterr().out
    assert "Loaded 8 deliveries and 6 drivers" in out
    assert "Auto-assigned 3 deliveries" in out
    assert "SW100101" in out


def test_rank_prints_nearest_first(capsys):
    assert main.main(["--rank", "1001"]) == 0
    out = capsys.readouterr().out
    assert out.index("David Rodriguez") < out.index("Priya Patel") < out.index("Sarah Chen")


def test_invalid_transition_exit_code(capsys):
    assert main.main(["--advance", "1001"]) == 3
    assert "ERROR [invalid_transition]" in capsys.readouterr().out


def test_conflict_exit_code(capsys):
    assert main.main(["--assign", "1001", "1"]) == 3
    assert "ERROR [conflict]" in capsys.readouterr().out


def test_missing_data_dir(tmp_path, capsys):
    assert main.main(["--data-dir", str(tmp_path)]) == 1
    assert "Failed to load data" in capsys.readouterr().out


def test_reports(capsys):
    assert main.main(["--auto-assign", "1001", "--advance", "1002", "--leaderboard", "--summary"]) == 0
    out = capsys.readouterr().out
    assert "Auto-assigned SW100101 to driver 3" in out
    assert "SW100102 is now delivered" in out
    assert "PERFORMANCE LEADERBOARD" in out
    assert "Top performer:        James Okafor" in out
