from raidscope.pipeline.scores import load_score_file, parse_score_csv


class TestParseScoreCsv:
    def test_with_header(self):
        text = "Player Name,Parse Score\nAlice,80\nBob,65\n"
        assert parse_score_csv(text) == {"Alice": 80, "Bob": 65}

    def test_without_header(self):
        assert parse_score_csv("Alice,80\nBob,65") == {"Alice": 80, "Bob": 65}

    def test_header_needs_both_words(self):
        # "player" alone is not a header, and "Player" is not an integer score
        assert parse_score_csv("Player,Score\nAlice,80") == {"Alice": 80}

    def test_malformed_rows_skipped(self):
        text = "Alice,80\n,70\nBob,lots\nCarol\n\nDave, 55 \n"
        assert parse_score_csv(text) == {"Alice": 80, "Dave": 55}

    def test_extra_columns_fail_integer_parse(self):
        assert parse_score_csv("Alice,80,extra") == {}

    def test_repeated_name_keeps_last(self):
        assert parse_score_csv("Alice,10\nAlice,20") == {"Alice": 20}

    def test_empty(self):
        assert parse_score_csv("") == {}


def test_load_score_file(tmp_path):
    path = tmp_path / "scores.csv"
    path.write_text("playerName,parseScore\nAlice,42\n", encoding="utf-8")
    assert load_score_file(path) == {"Alice": 42}
