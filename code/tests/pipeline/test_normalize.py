import json

from raidscope.models import AttendanceData
from raidscope.pipeline.normalize import (
    build_attendance,
    extract_players,
    normalize_report,
    parse_rankings,
)
from raidscope.wcl.models import Actor

ZONE = "Liberation of Undermine"
START = 1_735_761_600_000  # 2025-01-01 20:00 UTC


def _char(name, pct, spec, cls="Warrior", server="Area52"):
    return {
        "name": name,
        "server": {"name": server},
        "spec": spec,
        "class": cls,
        "rankPercent": pct,
    }


def _fight(fight_id, name, kill, start, end, boss_pct=None, zone=ZONE):
    return {
        "id": fight_id,
        "name": name,
        "startTime": start,
        "endTime": end,
        "kill": kill,
        "bossPercentage": boss_pct,
        "gameZone": {"id": 1, "name": zone} if zone else None,
    }


def _payload():
    return {
        "title": "Undermine Heroic",
        "startTime": START,
        "fights": [
            _fight(1, "Vexie", False, 0, 120_000, boss_pct=35.5),
            _fight(2, "Vexie", True, 200_000, 425_000),
            _fight(3, "Trash Pack", None, 430_000, 460_000, zone=None),
            _fight(4, "Stix", False, 500_000, 560_000, boss_pct=60.0),
            _fight(5, "Other Raid Boss", True, 600_000, 700_000, zone="Nerub-ar Palace"),
        ],
        "dpsRankings": {"data": [
            {"fightID": 1, "roles": {"dps": {"characters": [
                _char("Alice", 95.4, "Fury"),
                _char("Holly", 99, "Holy", cls="Paladin"),
            ]}}},
            {"fightID": 2, "roles": {
                "tanks": {"characters": [_char("Tanky", 40.9, "Protection")]},
                "dps": {"characters": [_char("Alice", 70.2, "Fury")]},
            }},
            {"fightID": 4, "roles": {"dps": {"characters": [_char("Alice", 20, "Fury")]}}},
        ]},
        "hpsRankings": json.dumps({"data": [
            {"fightID": 2, "roles": {"healers": {"characters": [
                _char("Holly", 88, "Holy", cls="Paladin"),
            ]}}},
        ]}),
        "masterData": {"actors": [
            {"id": 10, "name": "Alice", "type": "Player", "subType": "Warrior", "server": "Area52"},
            {"id": 11, "name": "Holly", "type": "Player", "subType": "Paladin", "server": "Area52"},
            {"id": 12, "name": "Tanky", "type": "Player", "subType": "Warrior", "server": "Area52"},
            {"id": 99, "name": "Vexie", "type": "NPC"},
        ]},
    }


class TestParseRankings:
    def test_dict(self):
        rankings = parse_rankings({"data": [{"fightID": 3, "roles": {}}, {"junk": 1}]})
        assert [r.fight_id for r in rankings] == [3]

    def test_json_string(self):
        assert len(parse_rankings('{"data": [{"fightID": 1}]}')) == 1

    def test_garbage(self):
        assert parse_rankings("not json") == []
        assert parse_rankings(None) == []


def test_extract_players_skips_npcs():
    actors = [Actor.model_validate(a) for a in _payload()["masterData"]["actors"]]
    players = extract_players(actors)
    assert [p.name for p in players.values()] == ["Alice", "Holly", "Tanky"]


class TestNormalizeReport:
    def test_header_fields(self):
        report = normalize_report("abc", _payload(), ZONE)
        assert report.report_code == "abc"
        assert report.report_title == "Undermine Heroic"
        assert report.start_time == START
        assert report.error is None
        assert report.attendance_data is None

    def test_only_target_zone_bosses(self):
        report = normalize_report("abc", _payload(), ZONE)
        assert list(report.fight_parses) == ["Vexie", "Stix"]
        assert report.selected_fight == "Vexie"

    def test_pulls_numbered_per_boss(self):
        vexie = normalize_report("abc", _payload(), ZONE).fight_parses["Vexie"]
        assert [p.attempt for p in vexie.pulls] == [1, 2]
        assert [p.is_kill for p in vexie.pulls] == [False, True]
        assert vexie.pulls[1].duration == "3:45"
        assert vexie.pulls[0].date == "2025-01-01 20:00"
        assert vexie.fight_details.kill is True
        assert vexie.fight_details.boss_percentage == 35.5

    def test_best_parses_from_kill(self):
        vexie = normalize_report("abc", _payload(), ZONE).fight_parses["Vexie"]
        best = {p.player_name: p for p in vexie.parses}
        # 95 on the wipe is ignored once Vexie died
        assert best["Alice"].percentile == 70
        assert best["Tanky"].percentile == 40
        assert best["Holly"].percentile == 88
        assert best["Holly"].is_healing_parse is True

    def test_healers_scored_from_hps_only(self):
        vexie = normalize_report("abc", _payload(), ZONE).fight_parses["Vexie"]
        wipe = vexie.pulls[0]
        assert "Holly" not in {p.player_name for p in wipe.parses}

    def test_unkilled_boss_falls_back_to_wipes(self):
        stix = normalize_report("abc", _payload(), ZONE).fight_parses["Stix"]
        assert stix.fight_details.kill is False
        assert [(p.player_name, p.percentile) for p in stix.parses] == [("Alice", 20)]

    def test_players_carry_specs(self):
        report = normalize_report("abc", _payload(), ZONE)
        specs = {p.name: p.spec for p in report.players}
        assert specs == {"Alice": "Fury", "Holly": "Holy", "Tanky": "Protection"}

    def test_attendance_passthrough(self):
        attendance = AttendanceData(player_attendance={"Alice": 3}, total_pulls=5)
        report = normalize_report("abc", _payload(), ZONE, attendance)
        assert report.attendance_data == attendance

    def test_empty_payload(self):
        report = normalize_report("abc", {}, ZONE)
        assert report.report_title == "Warcraft Logs Report"
        assert report.fight_parses == {}
        assert report.selected_fight == ""


def test_build_attendance_counts_every_fight():
    payload = {
        "fights": [
            {"id": 1, "friendlyPlayers": [10, 11]},
            {"id": 2, "friendlyPlayers": [10, 99]},
            {"id": 3, "friendlyPlayers": None},
        ],
        "masterData": {"actors": [
            {"id": 10, "name": "Alice", "type": "Player"},
            {"id": 11, "name": "Holly", "type": "Player"},
            {"id": 99, "name": "Pet", "type": "Pet"},
        ]},
    }
    attendance = build_attendance(payload)
    assert attendance.total_pulls == 3
    assert attendance.player_attendance == {"Alice": 2, "Holly": 1}
