import asyncio
import copy

import httpx
import pytest

from core.field_cache import RemoteFieldCache
from core.sync import SyncOrchestrator
from services.vmix.client import VMixClient
from shared.vmix.fields import FieldKind
from shared.vmix.models import ConnectionState, FieldMapping, RemoteInputDescriptor
from shared.vmix.overlays import EXTERNAL, OverlayExclusivityController, default_overlay_actions


class FakeVMix:
    """In-memory vMix answering the /api endpoint."""

    def __init__(self):
        self.inputs = [
            {"key": "key-a", "number": "3", "title": "SCORE",
             "fields": [("text", "TeamA.Text"), ("color", "ColorA.Fill.Color"), ("image", "LogoA.Source")]},
            {"key": "key-b", "number": "5", "title": "CARD", "fields": [("text", "Name.Text")]},
        ]
        self.overlays = {}
        self.commands = []
        self.state_requests = 0
        self.down = False

    def xml(self):
        inputs = []
        for entry in self.inputs:
            children = "".join(f'<{tag} index="0" name="{name}"></{tag}>' for tag, name in entry["fields"])
            inputs.append(
                f'<input key="{entry["key"]}" number="{entry["number"]}" title="{entry["title"]}">{children}</input>'
            )
        overlays = "".join(
            f'<overlay number="{n}">{self.overlays.get(n, "")}</overlay>' for n in range(1, 9)
        )
        return f"<vmix><version>27</version><inputs>{''.join(inputs)}</inputs><overlays>{overlays}</overlays></vmix>"

    def handler(self, request):
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        params = dict(request.url.params)
        if "Function" in params:
            self.commands.append(params)
            return httpx.Response(200, text="Function completed successfully.")
        self.state_requests += 1
        return httpx.Response(200, text=self.xml())


@pytest.fixture
def fake():
    return FakeVMix()


@pytest.fixture
def changes():
    return []


def make_sync(handler, settings_blob, changes):
    client = VMixClient("vmix.local", 8088, transport=httpx.MockTransport(handler))
    orchestrator = SyncOrchestrator(
        client,
        cache=RemoteFieldCache(),
        overlays=OverlayExclusivityController(default_overlay_actions("CARD", "PAIR")),
        asset_base_url="http://10.0.0.2:3000",
        on_config_change=changes.append,
    )
    orchestrator.load(settings_blob)
    return orchestrator


@pytest.fixture
def sync(fake, settings_blob, changes):
    return make_sync(fake.handler, settings_blob, changes)


def run(sync, coro):
    async def scenario():
        try:
            return await coro
        finally:
            await sync.client.close()

    return asyncio.run(scenario())


# ----------------------------------------------------------------------
# Configuration lifecycle
# ----------------------------------------------------------------------

def test_load_migrates_legacy_settings(sync, settings_blob):
    legacy = copy.deepcopy(settings_blob)
    legacy["inputs"]["input-score"]["fields"]["ColorA"] = {"type": "color", "dataMapKey": "teamA.color"}
    legacy["inputs"]["input-score"]["fields"]["ServeA"] = {"type": "visibility", "dataMapKey": "visibility.pointA"}

    config = sync.load(legacy)

    assert config.get("input-score").fields["ColorA"].kind is FieldKind.FILL
    assert config.get("input-score").fields["ServeA"].visible is True
    exported = sync.export()["inputs"]["input-score"]["fields"]
    assert exported["ColorA"]["type"] == "fill"
    assert exported["ServeA"] == {"type": "text", "dataMapKey": "visibility.pointA", "visible": True}


def test_check_connection_tracks_state(sync, fake, changes):
    result = run(sync, sync.check_connection())
    assert result.success
    assert sync.config.connection_state is ConnectionState.CONNECTED
    assert changes[-1] is sync.config


def test_check_connection_failure(sync, fake):
    fake.down = True
    result = run(sync, sync.check_connection())
    assert not result.success
    assert result.error.startswith("could not reach remote system")
    assert sync.config.connection_state is ConnectionState.DISCONNECTED


# ----------------------------------------------------------------------
# Input refresh and field discovery
# ----------------------------------------------------------------------

def test_refresh_heals_renamed_input_and_invalidates_only_it(sync, fake, changes):
    sync.cache.populate("input-score", [], sync.cache.begin("input-score"))
    sync.cache.populate("input-card", [], sync.cache.begin("input-card"))
    fake.inputs[0]["title"] = "Scoreboard"
    fake.inputs[0]["number"] = "12"
    fields_before = sync.config.get("input-score").fields

    report = run(sync, sync.refresh_inputs())

    assert report.ok
    assert report.updated_ids == ["input-score"]
    score = sync.config.get("input-score")
    assert (score.remote_title, score.remote_number, score.remote_key) == ("Scoreboard", "12", "key-a")
    assert score.fields == fields_before
    assert sync.cache.get("input-score") is None
    assert sync.cache.get("input-card") == []
    assert changes and changes[-1] is sync.config


def test_refresh_without_changes_keeps_config(sync, changes):
    before = sync.config
    report = run(sync, sync.refresh_inputs())
    assert report.updated_ids == [] and report.unresolved_ids == []
    assert sync.config is before
    assert changes == []


def test_refresh_failure_is_reported(sync, fake):
    fake.down = True
    before = sync.config
    report = run(sync, sync.refresh_inputs())
    assert not report.ok
    assert report.error.startswith("could not reach remote system")
    assert sync.config is before


def test_discover_fields_is_cached(sync, fake):
    async def scenario():
        first = await sync.discover_fields("input-score")
        second = await sync.discover_fields("input-score")
        return first, second

    first, second = run(sync, scenario())

    assert [f.identifier for f in first] == ["TeamA", "ColorA", "LogoA"]
    assert second == first
    assert fake.state_requests == 1


def test_discover_fields_failure_returns_none(sync, fake):
    fake.down = True
    assert run(sync, sync.discover_fields("input-card")) is None
    with pytest.raises(KeyError):
        run(sync, sync.discover_fields("missing"))


# ----------------------------------------------------------------------
# Match push
# ----------------------------------------------------------------------

def test_push_sends_every_mapped_field(sync, fake, match):
    report = run(sync, sync.push_match(match))

    assert report.ok and report.sent == 5
    sent = {c["SelectedName"]: c for c in fake.commands}
    assert sent["TeamA.Text"] == {"Function": "SetText", "Input": "SCORE", "SelectedName": "TeamA.Text", "Value": "Falcons"}
    assert sent["ServeA.Text"]["Function"] == "SetTextVisibleOn"
    assert sent["ColorA.Fill.Color"]["Value"] == "#3377FF"
    assert sent["LogoA.Source"]["Value"] == "http://10.0.0.2:3000/logos/falcons%20logo.png"


def test_push_only_resends_changed_values(sync, fake, match):
    async def scenario():
        await sync.push_match(match)
        unchanged = await sync.push_match(match)
        match["currentSet"]["scoreA"] = 13
        changed = await sync.push_match(match)
        forced = await sync.push_match(match, force=True)
        return unchanged, changed, forced

    unchanged, changed, forced = run(sync, scenario())

    assert (unchanged.sent, unchanged.skipped) == (0, 5)
    assert (changed.sent, changed.skipped) == (1, 4)
    assert fake.commands[5]["Value"] == "13"
    assert forced.sent == 5


def test_new_match_id_resets_sent_values(sync, fake, match):
    async def scenario():
        await sync.push_match(match)
        return await sync.push_match({**match, "matchId": "m-2"})

    assert run(sync, scenario()).sent == 5


def test_disabled_inputs_are_skipped(sync, fake, match):
    sync.update_input("input-score", enabled=False)
    report = run(sync, sync.push_match(match))
    assert report.sent == 0
    assert fake.commands == []


def test_push_stops_at_first_failure(sync, fake, match):
    fake.down = True
    report = run(sync, sync.push_match(match))
    assert report.sent == 0
    assert len(report.errors) == 1
    assert report.errors[0].startswith("could not reach remote system")


def test_mapping_edit_forces_resend_of_that_input(sync, fake, match):
    async def scenario():
        await sync.push_match(match)
        sync.set_field_mapping("input-score", "TeamA", FieldMapping(FieldKind.TEXT, custom_value="HOME"))
        return await sync.push_match(match)

    report = run(sync, scenario())
    assert report.sent == 5
    assert fake.commands[-5:][0]["Value"] == "HOME"


# ----------------------------------------------------------------------
# Overlays
# ----------------------------------------------------------------------

def test_show_overlay_writes_card_then_takes_it_on_air(sync, fake, match):
    result = run(sync, sync.show_overlay("referee1Show", match))

    assert result.success
    assert fake.commands == [
        {"Function": "SetText", "Input": "CARD", "SelectedName": "Name.Text", "Value": "Smirnov"},
        {"Function": "OverlayInput2In", "Input": "CARD"},
    ]
    assert sync.is_overlay_active("referee1Show")
    assert sync.is_overlay_blocked("coachTeamA")


def test_blocked_overlay_is_refused_without_commands(sync, fake, match):
    async def scenario():
        await sync.show_overlay("referee1Show", match)
        return await sync.show_overlay("coachTeamA", match)

    result = run(sync, scenario())

    assert not result.success
    assert result.error == "1st referee is already on air on this input"
    assert len(fake.commands) == 2
    assert sync.is_overlay_active("referee1Show")


def test_missing_data_refuses_overlay(sync, fake, match):
    result = run(sync, sync.show_overlay("coachTeamB", match))
    assert result.error == "Team B coach name is not set"
    assert fake.commands == []


def test_unconfigured_overlay_input(sync, fake, match):
    match["officials"]["referee2"] = "Kuznetsov"
    result = run(sync, sync.show_overlay("refereesPair", match))
    assert not result.success
    assert "not configured" in result.error
    assert fake.commands == []


def test_hide_overlay_releases_input(sync, fake, match):
    async def scenario():
        await sync.show_overlay("coachTeamA", match)
        blocked_hide = await sync.hide_overlay("referee2Show")
        hidden = await sync.hide_overlay("coachTeamA")
        return blocked_hide, hidden

    blocked_hide, hidden = run(sync, scenario())

    assert not blocked_hide.success
    assert hidden.success
    assert fake.commands[-1] == {"Function": "OverlayInput2Out"}
    assert not sync.is_overlay_active("coachTeamA")
    assert not sync.is_overlay_blocked("referee2Show")


def test_failed_show_leaves_input_idle(sync, fake, match):
    fake.down = True
    result = run(sync, sync.show_overlay("coachTeamA", match))
    assert not result.success
    assert not sync.is_overlay_active("coachTeamA")
    assert not sync.is_overlay_blocked("referee1Show")


def test_concurrent_shows_on_one_input_admit_only_one(fake, settings_blob, changes, match):
    async def slow_vmix(request):
        await asyncio.sleep(0.01)
        return fake.handler(request)

    sync = make_sync(slow_vmix, settings_blob, changes)

    async def scenario():
        return await asyncio.gather(
            sync.show_overlay("referee1Show", match),
            sync.show_overlay("coachTeamA", match),
        )

    first, second = run(sync, scenario())

    assert first.success
    assert not second.success
    assert second.error == "1st referee is already on air on this input"
    assert fake.commands == [
        {"Function": "SetText", "Input": "CARD", "SelectedName": "Name.Text", "Value": "Smirnov"},
        {"Function": "OverlayInput2In", "Input": "CARD"},
    ]
    assert sync.is_overlay_active("referee1Show")
    assert not sync.is_overlay_active("coachTeamA")


def test_show_in_flight_survives_state_refresh(fake, settings_blob, changes, match):
    async def slow_vmix(request):
        await asyncio.sleep(0.01)
        return fake.handler(request)

    sync = make_sync(slow_vmix, settings_blob, changes)

    async def scenario():
        show = asyncio.ensure_future(sync.show_overlay("coachTeamA", match))
        await asyncio.sleep(0)
        await sync.refresh_overlay_state()
        refused = await sync.show_overlay("referee1Show", match)
        return await show, refused

    shown, refused = run(sync, scenario())

    assert shown.success
    assert not refused.success
    assert sync.is_overlay_active("coachTeamA")


def test_failed_show_hands_input_back_to_external_holder(sync, fake, match):
    fake.overlays = {2: "5"}
    run(sync, sync.refresh_overlay_state())
    fake.down = True

    result = run(sync, sync.show_overlay("coachTeamA", match))

    assert not result.success
    assert sync.overlays.holder("input-card") == EXTERNAL


def test_refresh_overlay_state_tracks_external_activation(sync, fake):
    fake.overlays = {2: "5"}

    async def scenario():
        shown = await sync.refresh_overlay_state()
        fake.overlays = {}
        hidden = await sync.refresh_overlay_state()
        return shown, hidden

    shown, hidden = run(sync, scenario())

    assert shown.data == {"input-score": False, "input-card": True}
    assert hidden.data == {"input-score": False, "input-card": False}
    assert sync.overlays.holder("input-card") is None


def test_external_activation_does_not_block(sync, fake):
    fake.overlays = {2: "5"}
    run(sync, sync.refresh_overlay_state())
    assert sync.overlays.holder("input-card") == EXTERNAL
    assert not sync.is_overlay_blocked("coachTeamA")
    assert not sync.is_overlay_active("coachTeamA")


def test_input_on_another_channel_is_not_on_air(sync, fake):
    fake.overlays = {1: "5"}
    result = run(sync, sync.refresh_overlay_state())
    assert result.data["input-card"] is False


# ----------------------------------------------------------------------
# Config edits
# ----------------------------------------------------------------------

def test_add_and_remove_inputs(sync, changes):
    input_id = sync.add_input(RemoteInputDescriptor(key="key-c", title="LINEUP", number="8"), overlay=3)
    assert sync.config.get(input_id).overlay == 3
    assert sync.config.input_order[-1] == input_id

    sync.cache.populate("input-card", [], sync.cache.begin("input-card"))
    sync.remove_input("input-card")
    assert "input-card" not in sync.config.inputs
    assert sync.cache.get("input-card") is None
    assert len(changes) == 2


def test_set_connection_resets_state(sync):
    sync.set_connection("192.168.1.20", 8099)
    assert (sync.config.host, sync.config.port) == ("192.168.1.20", 8099)
    assert sync.client.base_url == "http://192.168.1.20:8099/api"
    assert sync.config.connection_state is ConnectionState.DISCONNECTED


def test_list_remote_inputs(sync):
    inputs = run(sync, sync.list_remote_inputs())
    assert [(d.key, d.title, d.number) for d in inputs] == [("key-a", "SCORE", "3"), ("key-b", "CARD", "5")]
    assert sync.remote_state.version == "27"
