def test_import_ringboard_package() -> None:
    import importlib

    module = importlib.import_module("ringboard")
    assert module is not None


def test_import_services_without_side_effects() -> None:
    from ringboard.services import GameSession, OverlayScheduler, RewardComposer, TurnStateMachine

    assert GameSession and OverlayScheduler and RewardComposer and TurnStateMachine


def test_import_rng_no_side_effects() -> None:
    from ringboard.core.rng import RNG

    rng = RNG(42)
    value = rng.randint(0, 1)
    assert value in (0, 1)
