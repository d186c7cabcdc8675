from core.field_cache import RemoteFieldCache
from shared.vmix.fields import FieldKind
from shared.vmix.models import RemoteFieldDescriptor

NAME = [RemoteFieldDescriptor("Name.Text", FieldKind.TEXT)]
LOGO = [RemoteFieldDescriptor("Logo.Source", FieldKind.IMAGE)]


def test_populate_and_get():
    cache = RemoteFieldCache()
    generation = cache.begin("input-1")
    assert cache.populate("input-1", NAME, generation)
    assert cache.get("input-1") == NAME
    assert "input-1" in cache
    assert cache.get("input-2") is None


def test_superseded_discovery_is_discarded():
    cache = RemoteFieldCache()
    older = cache.begin("input-1")
    newer = cache.begin("input-1")

    assert cache.populate("input-1", LOGO, newer)
    assert not cache.populate("input-1", NAME, older)
    assert cache.get("input-1") == LOGO


def test_invalidate_voids_in_flight_discovery():
    cache = RemoteFieldCache()
    generation = cache.begin("input-1")
    cache.invalidate("input-1")
    assert not cache.populate("input-1", NAME, generation)
    assert cache.get("input-1") is None


def test_invalidate_all():
    cache = RemoteFieldCache()
    for input_id in ("a", "b"):
        cache.populate(input_id, NAME, cache.begin(input_id))
    pending = cache.begin("c")

    cache.invalidate_all()

    assert len(cache) == 0
    assert not cache.populate("c", NAME, pending)


def test_returned_lists_are_copies():
    cache = RemoteFieldCache()
    cache.populate("a", NAME, cache.begin("a"))
    cache.get("a").clear()
    assert cache.get("a") == NAME
