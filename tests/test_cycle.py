import pytest

from typelens.cycle import CycleGuard


def test_enter_and_leave():
    guard = CycleGuard()

    assert guard.enter(1)
    assert not guard.enter(1)
    assert 1 in guard
    guard.leave(1)
    assert 1 not in guard
    assert guard.enter(1)


def test_expanding_releases_on_exit():
    guard = CycleGuard()

    with guard.expanding("a") as outer:
        assert outer
        with guard.expanding("a") as inner:
            assert not inner
        assert "a" in guard
        with guard.expanding("b") as other:
            assert other
            assert len(guard) == 2
    assert len(guard) == 0


def test_expanding_releases_on_error():
    guard = CycleGuard()

    with pytest.raises(RuntimeError):
        with guard.expanding("a"):
            raise RuntimeError("boom")

    assert "a" not in guard
