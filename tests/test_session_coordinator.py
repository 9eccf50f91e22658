"""
Tests for session fencing.
"""
import threading

from popup_translator.services.session.coordinator import SessionCoordinator, SurfaceState


def test_begin_makes_session_current(sessions):
    session = sessions.begin("main")

    assert sessions.is_current(session)
    assert sessions.current("main") == session
    assert sessions.state("main") is SurfaceState.STREAMING


def test_new_session_supersedes_previous(sessions):
    first = sessions.begin("main")
    second = sessions.begin("main")

    assert not sessions.is_current(first)
    assert sessions.is_current(second)
    assert second.generation > first.generation
    assert first != second


def test_surfaces_are_independent(sessions):
    main = sessions.begin("main")
    other = sessions.begin("sidebar")

    assert sessions.is_current(main)
    assert sessions.is_current(other)


def test_finish_of_current_session_goes_idle(sessions):
    session = sessions.begin()

    assert sessions.finish(session) is True
    assert sessions.state() is SurfaceState.IDLE
    # A finished session stays current until the next begin()
    assert sessions.is_current(session)


def test_finish_of_stale_session_leaves_surface_untouched(sessions):
    stale = sessions.begin()
    current = sessions.begin()

    assert sessions.finish(stale) is False
    assert sessions.state() is SurfaceState.STREAMING
    assert sessions.is_current(current)


def test_unknown_surface_starts_idle(sessions):
    assert sessions.current("never-used") is None
    assert sessions.state("never-used") is SurfaceState.IDLE


def test_ids_from_separate_coordinators_never_collide():
    a = SessionCoordinator().begin()
    b = SessionCoordinator().begin()

    assert a.generation == b.generation
    assert a != b
    assert not SessionCoordinator().is_current(a)


def test_concurrent_begins_leave_exactly_one_current(sessions):
    issued = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            session = sessions.begin()
            with lock:
                issued.append(session)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    current = [s for s in issued if sessions.is_current(s)]
    assert len(current) == 1
    assert len({s.generation for s in issued}) == len(issued) == 400
    assert current[0].generation == 400


def test_release_forgets_surface(sessions):
    session = sessions.begin("once-1")

    sessions.release("once-1")

    assert sessions.surfaces() == []
    assert not sessions.is_current(session)
    assert sessions.finish(session) is False


def test_queries_do_not_create_surfaces(sessions):
    stale = sessions.begin("once-1")
    sessions.release("once-1")

    sessions.is_current(stale)
    sessions.finish(stale)
    sessions.current("other")
    sessions.state("other")

    assert sessions.surfaces() == []
