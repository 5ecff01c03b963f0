import json
from pathlib import Path

import pytest

from ringboard.data.errors import DataLoadError, DataReferenceError, DataValidationError
from ringboard.data.repositories import BoardRepository, TiersRepository


def test_bundled_board_loads_three_rings() -> None:
    topology = BoardRepository().get_topology()

    assert topology.ring_numbers == (1, 2, 3)
    assert [topology.ring(number).tile_count for number in (1, 2, 3)] == [35, 24, 7]
    assert topology.reward_multiplier(3) == 10
    assert topology.portal(1).on_land.action == "ascend"
    assert topology.portal(3).on_land.action == "throne"
    for number in topology.ring_numbers:
        ring = topology.ring(number)
        assert [tile.id for tile in ring.tiles] == list(range(ring.tile_count))


def test_bundled_tiers_are_sorted_from_zero() -> None:
    tiers = TiersRepository().all()

    assert tiers[0].min_net_worth == 0
    assert [tier.min_net_worth for tier in tiers] == sorted(tier.min_net_worth for tier in tiers)
    assert TiersRepository().get(2).benefits["star_bonus"] == pytest.approx(0.1)


def test_board_repo_loads_minimal_board(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(definitions_dir / "board.json", {"rings": [_ring(1, 4), _ring(2, 3)]})

    topology = BoardRepository(base_path=definitions_dir).get_topology()

    assert topology.ring_numbers == (1, 2)
    assert topology.tile(2, 2) is not None
    assert topology.tile(2, 3) is None


def test_board_repo_rejects_tile_count_mismatch(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    ring = _ring(1, 4)
    ring["tile_count"] = 5
    _write_json(definitions_dir / "board.json", {"rings": [ring]})

    with pytest.raises(DataValidationError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_board_repo_rejects_unknown_tile_kind(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    ring = _ring(1, 4)
    ring["tiles"][2]["kind"] = "jail"
    _write_json(definitions_dir / "board.json", {"rings": [ring]})

    with pytest.raises(DataValidationError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_board_repo_rejects_category_tile_without_category(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    ring = _ring(1, 4)
    ring["tiles"][1] = {"id": 1, "kind": "category", "title": "Nameless"}
    _write_json(definitions_dir / "board.json", {"rings": [ring]})

    with pytest.raises(DataValidationError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_board_repo_rejects_portal_into_missing_ring(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    ring = _ring(1, 4)
    ring["portal"]["on_land"] = {"action": "ascend", "target_ring": 9, "target_tile": 0}
    _write_json(definitions_dir / "board.json", {"rings": [ring]})

    with pytest.raises(DataReferenceError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_board_repo_rejects_portal_target_outside_ring(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    outer = _ring(1, 4)
    outer["portal"]["on_pass"] = {"action": "ascend", "target_ring": 2, "target_tile": 3}
    _write_json(definitions_dir / "board.json", {"rings": [outer, _ring(2, 3)]})

    with pytest.raises(DataReferenceError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_board_repo_rejects_duplicate_ring(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(definitions_dir / "board.json", {"rings": [_ring(1, 4), _ring(1, 4)]})

    with pytest.raises(DataValidationError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_board_repo_rejects_bad_quick_reward_range(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    ring = _ring(1, 4)
    ring["tiles"][3] = {
        "id": 3,
        "kind": "quick_reward",
        "title": "Tip",
        "reward_kind": "cash",
        "min_reward": 900,
        "max_reward": 100,
    }
    _write_json(definitions_dir / "board.json", {"rings": [ring]})

    with pytest.raises(DataValidationError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_missing_file_raises_load_error(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)

    with pytest.raises(DataLoadError):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_invalid_json_raises_load_error(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    (definitions_dir / "tiers.json").write_text("{oops", encoding="utf-8")

    with pytest.raises(DataLoadError):
        TiersRepository(base_path=definitions_dir).all()


def test_top_level_list_is_rejected(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(definitions_dir / "board.json", [])  # type: ignore[arg-type]

    with pytest.raises(DataValidationError, match="JSON object"):
        BoardRepository(base_path=definitions_dir).get_topology()


def test_tiers_repo_requires_zero_floor(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "tiers.json",
        {"tiers": [{"tier": 1, "name": "Late", "min_net_worth": 10, "benefits": []}]},
    )

    with pytest.raises(DataValidationError):
        TiersRepository(base_path=definitions_dir).all()


def _ring(number: int, tile_count: int) -> dict:
    tiles = [{"id": 0, "kind": "start", "title": "Start"}]
    tiles.extend({"id": index, "kind": "corner", "title": f"Corner {index}"} for index in range(1, tile_count))
    return {
        "number": number,
        "name": f"Ring {number}",
        "tile_count": tile_count,
        "reward_multiplier": 1,
        "tiles": tiles,
        "portal": {
            "tile_id": 0,
            "on_pass": {"action": "stay", "target_ring": number, "target_tile": 0},
            "on_land": {"action": "stay", "target_ring": number, "target_tile": 0},
        },
    }


def _write_json(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _make_definitions_dir(tmp_path: Path) -> Path:
    definitions_dir = tmp_path / "definitions"
    definitions_dir.mkdir()
    return definitions_dir
