"""
Tests for the command-line interface.
"""

from ..cli import main


def _field(output: str, label: str) -> list[int]:
    for line in output.splitlines():
        if line.startswith(label):
            return [int(v) for v in line.split(":", 1)[1].split()]
    raise AssertionError(f"{label} not in output")


class TestCLI:
    """Tests for arena subcommands."""

    def test_roster(self, capsys):
        assert main(["roster"]) == 0
        out = capsys.readouterr().out
        assert "[2] Ember" in out
        assert "move  5: Fireball" in out

    def test_commit_then_verify(self, capsys):
        assert main(["commit", "5"]) == 0
        out = capsys.readouterr().out
        parts = _field(out, "Commitment parts")
        nonce_parts = _field(out, "Nonce parts")

        args = ["verify", "5", *map(str, nonce_parts), "--commit", *map(str, parts)]
        assert main(args) == 0
        assert "Valid" in capsys.readouterr().out

        args[1] = "6"
        assert main(args) == 2

    def test_commit_out_of_range(self, capsys):
        assert main(["commit", "21"]) == 1
        assert "Error" in capsys.readouterr().out

    def test_unknown_hash(self, capsys):
        assert main(["commit", "5", "--hash", "md5"]) == 1

    def test_simulate(self, capsys):
        assert main(["simulate", "--bot-a", "first", "--bot-b", "first", "--max-rounds", "50"]) == 0
        out = capsys.readouterr().out
        assert "Team A (FirstLegalPolicy): Inferno, Torrent, Gale" in out
        assert "Round 1" in out
        assert "Result:" in out
