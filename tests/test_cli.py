from othelloai import __version__, persistence
from othelloai.cli import main


def test_version_flag(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == __version__


def test_ai_vs_ai_game_prints_result(capsys):
    code = main(["--black", "alphabeta:1", "--white", "minimax:1", "--heuristic", "absolute"])
    assert code == 0
    out = capsys.readouterr().out
    assert "black plays" in out
    assert "Game over:" in out


def test_bad_player_spec_exits_with_usage_error(capsys):
    assert main(["--black", "minimax:0", "--white", "minimax:1"]) == 2
    assert "othelloai:" in capsys.readouterr().err


def test_corrupt_q_table_exits_with_error(tmp_path, capsys):
    path = tmp_path / "q.jsonl"
    path.write_text("garbage")
    assert main(["--black", "qlearning", "--white", "minimax:1", "--q-table", str(path)]) == 2
    assert "othelloai:" in capsys.readouterr().err


def test_training_writes_loadable_table(tmp_path, capsys):
    path = tmp_path / "q.jsonl"
    args = ["--train", "--episodes", "2", "--workers", "2", "--seed", "1", "--q-table", str(path)]
    assert main(args) == 0
    assert "Q-table written to" in capsys.readouterr().out
    table = persistence.load_file(path)
    assert table.state_count() > 0

    # Resuming keeps what was learned.
    assert main(args + ["--resume", "--epsilon", "0"]) == 0
    assert persistence.load_file(path).state_count() >= table.state_count()
