"""
vMix synchronization orchestrator.

Owns the live configuration object, the field-discovery cache and the
overlay controller, and is the only place that turns match data into vMix
commands. The configuration is never edited in place: every change swaps
``self.config`` for a new object and notifies ``on_config_change`` so the
runtime can persist it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple

from core.field_cache import RemoteFieldCache
from services.vmix.client import CommandResult, RemoteUnavailable, VMixClient
from services.vmix.commands import RemoteCommand, build_field_commands, overlay_command
from services.vmix.state import RemoteState
from shared.logging.logger import get_logger
from shared.vmix.fields import FieldKind
from shared.vmix.input_resolver import find_input, resolve_input_id
from shared.vmix.match_values import value_for_key
from shared.vmix.migration import migrate_config
from shared.vmix.models import (
    ConnectionState,
    FieldMapping,
    InputConfig,
    RemoteFieldDescriptor,
    RemoteInputDescriptor,
    VMixConfig,
)
from shared.vmix.overlays import (
    OverlayAction,
    OverlayExclusivityController,
    OverlayRefused,
    default_overlay_actions,
)
from shared.vmix.remap import reconcile_inputs

log = get_logger("core.sync")

_REMOTE_IDENTITY = {"remote_title", "remote_key", "remote_number"}


@dataclass
class RefreshReport:
    updated_ids: List[str] = field(default_factory=list)
    unresolved_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PushReport:
    sent: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class SyncOrchestrator:
    def __init__(
        self,
        client: VMixClient,
        *,
        config: Optional[VMixConfig] = None,
        cache: Optional[RemoteFieldCache] = None,
        overlays: Optional[OverlayExclusivityController] = None,
        asset_base_url: Optional[str] = None,
        on_config_change: Optional[Callable[[VMixConfig], None]] = None,
    ):
        self.client = client
        self.config = config or VMixConfig()
        self.cache = cache or RemoteFieldCache()
        self.overlays = overlays or OverlayExclusivityController(default_overlay_actions())
        self.overlays.set_resolver(self._resolve_resource)
        self.asset_base_url = asset_base_url
        self.on_config_change = on_config_change

        self.remote_state: Optional[RemoteState] = None
        # input id -> wire name -> (function, value) last acknowledged by vMix
        self._last_sent: Dict[str, Dict[str, Tuple[str, Optional[str]]]] = {}
        self._match_id: Any = None
        # inputs with a show request in flight
        self._pending_overlays: Set[str] = set()

    # ------------------------------------------------------------------
    # Configuration lifecycle
    # ------------------------------------------------------------------

    def load(self, raw: Any) -> VMixConfig:
        """Adopt a persisted settings blob (migrated and repaired first)."""
        self.config = VMixConfig.from_dict(migrate_config(raw))
        self.client.set_connection(self.config.host, self.config.port)
        self.cache.invalidate_all()
        self.overlays.reset()
        self._last_sent.clear()
        log.info(f"Loaded vMix config: {len(self.config.input_order)} input(s), {self.config.host}:{self.config.port}")
        return self.config

    def export(self) -> Dict[str, Any]:
        return migrate_config(self.config.to_dict())

    def _replace_config(self, config: VMixConfig) -> None:
        if config is self.config:
            return
        self.config = config
        if self.on_config_change is not None:
            self.on_config_change(config)

    def _resolve_resource(self, input_key: str) -> Optional[str]:
        return resolve_input_id(self.config, input_key)

    def _forget_input(self, input_id: str) -> None:
        self.cache.invalidate(input_id)
        self._last_sent.pop(input_id, None)

    # ------------------------------------------------------------------
    # Config edits
    # ------------------------------------------------------------------

    def set_connection(self, host: str, port: int) -> None:
        self._replace_config(
            self.config.with_connection(host=host, port=port, state=ConnectionState.DISCONNECTED)
        )
        self.client.set_connection(host, port)
        self.cache.invalidate_all()
        self._last_sent.clear()

    def add_input(
        self,
        remote: RemoteInputDescriptor,
        *,
        display_name: Optional[str] = None,
        overlay: int = 1,
    ) -> str:
        config, input_id = self.config.add_input(remote, display_name=display_name, overlay=overlay)
        self._replace_config(config)
        log.info(f"Added vMix input {remote.title!r} as {input_id}")
        return input_id

    def remove_input(self, input_id: str) -> None:
        self._replace_config(self.config.remove_input(input_id))
        self._forget_input(input_id)

    def update_input(self, input_id: str, **changes: Any) -> None:
        self._replace_config(self.config.update_input(input_id, **changes))
        if _REMOTE_IDENTITY & set(changes):
            self._forget_input(input_id)

    def set_field_mapping(
        self,
        input_id: str,
        identifier: str,
        mapping: Optional[FieldMapping],
    ) -> None:
        self._replace_config(self.config.set_field_mapping(input_id, identifier, mapping))
        self._last_sent.pop(input_id, None)

    # ------------------------------------------------------------------
    # Remote discovery
    # ------------------------------------------------------------------

    async def check_connection(self) -> CommandResult:
        result = await self.client.test_connection()
        state = ConnectionState.CONNECTED if result.success else ConnectionState.DISCONNECTED
        if state is not self.config.connection_state:
            self._replace_config(self.config.with_connection(state=state))
        return result

    async def list_remote_inputs(self) -> List[RemoteInputDescriptor]:
        self.remote_state = await self.client.fetch_state()
        return list(self.remote_state.inputs)

    async def refresh_inputs(self) -> RefreshReport:
        """Pull the live input list and heal stale titles/numbers by key."""
        try:
            state = await self.client.fetch_state()
        except RemoteUnavailable as e:
            log.warning(f"Input refresh skipped: {e}")
            return RefreshReport(error=str(e))

        self.remote_state = state
        result = reconcile_inputs(self.config, state.inputs)
        for input_id in result.updated_ids:
            self._forget_input(input_id)
        self._replace_config(result.config)

        if result.updated_ids:
            log.info(f"Remapped {result.updated_count} vMix input(s) by key")
        return RefreshReport(
            updated_ids=list(result.updated_ids),
            unresolved_ids=list(result.unresolved_ids),
        )

    async def discover_fields(self, input_id: str) -> Optional[List[RemoteFieldDescriptor]]:
        """
        Return the fields vMix reports for an input, cached per input id.

        ``None`` means discovery failed, or a newer discovery for the same
        input superseded this one before it resolved.
        """
        input_config = self.config.get(input_id)
        if input_config is None:
            raise KeyError(input_id)

        cached = self.cache.get(input_id)
        if cached is not None:
            return cached

        generation = self.cache.begin(input_id)
        try:
            state = await self.client.fetch_state()
        except RemoteUnavailable as e:
            log.warning(f"Field discovery for {input_id} failed: {e}")
            return None

        self.remote_state = state
        descriptor = _locate(state, input_config)
        fields = state.fields_for(descriptor.key) if descriptor else []
        if descriptor is None:
            log.info(f"Input {input_id} ({input_config.remote_identifier!r}) not found in vMix")

        if not self.cache.populate(input_id, fields, generation):
            return self.cache.get(input_id)
        return fields

    # ------------------------------------------------------------------
    # Match data
    # ------------------------------------------------------------------

    def values_for_input(self, input_config: InputConfig, match: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for identifier, mapping in input_config.fields.items():
            if mapping.custom_value is not None:
                values[identifier] = mapping.custom_value
            else:
                values[identifier] = value_for_key(match, mapping.data_map_key)
        return values

    async def _send_all(
        self,
        input_id: str,
        commands: List[RemoteCommand],
        report: PushReport,
        *,
        dedupe: bool,
    ) -> bool:
        sent = self._last_sent.setdefault(input_id, {})
        for command in commands:
            fingerprint = (command.function, command.value)
            if dedupe and sent.get(command.selected_name) == fingerprint:
                report.skipped += 1
                continue
            try:
                await self.client.send(command)
            except RemoteUnavailable as e:
                log.warning(f"vMix command {command.function} on {command.input!r} failed: {e}")
                report.errors.append(str(e))
                return False
            sent[command.selected_name] = fingerprint
            report.sent += 1
        return True

    async def push_match(self, match: Optional[Mapping[str, Any]], force: bool = False) -> PushReport:
        """
        Mirror a match snapshot onto every enabled input.

        Values vMix already acknowledged are not re-sent unless ``force`` is
        set or the match id changed. The push stops at the first transport
        failure; the remaining fields go out on the next push.
        """
        report = PushReport()
        match_id = match.get("matchId") if isinstance(match, Mapping) else None
        if force or match_id != self._match_id:
            self._last_sent.clear()
            self._match_id = match_id

        for input_config in self.config.ordered_inputs():
            if not input_config.enabled or not input_config.fields:
                continue
            values = self.values_for_input(input_config, match)
            commands = build_field_commands(input_config, values, self.asset_base_url)
            if not await self._send_all(input_config.input_id, commands, report, dedupe=True):
                break

        if report.sent:
            log.debug(f"Pushed {report.sent} field(s) to vMix ({report.skipped} unchanged)")
        return report

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def is_overlay_active(self, action_id: str) -> bool:
        return self.overlays.is_active(action_id)

    def is_overlay_blocked(self, action_id: str) -> bool:
        return self.overlays.is_blocked(action_id)

    def _overlay_input(self, action_id: str) -> Tuple[Optional[InputConfig], Optional[str]]:
        action = self.overlays.get(action_id)
        found = find_input(self.config, action.input_key)
        if found is None:
            return None, f"Overlay input {action.input_key!r} is not configured"
        input_config = found.input_config
        if not input_config.remote_identifier:
            return None, f"Overlay input {action.input_key!r} has no vMix title or number"
        return input_config, None

    async def show_overlay(self, action_id: str, match: Optional[Mapping[str, Any]]) -> CommandResult:
        """
        Write the action's card fields, then take its input on air.

        The input is claimed before the first command goes out, so a second
        show on the same input is refused while this one is in flight. A
        transport failure hands the input back to its previous holder.
        """
        try:
            action = self.overlays.check_activation(action_id, match)
        except OverlayRefused as e:
            log.info(f"Overlay {action_id} refused: {e.reason}")
            return CommandResult.failed(e.reason)

        input_config, error = self._overlay_input(action_id)
        if input_config is None:
            return CommandResult.failed(error)

        resource = self.overlays.resource_of(action_id)
        previous = self.overlays.holder(resource)
        try:
            self.overlays.activate(action_id)
        except OverlayRefused as e:
            log.info(f"Overlay {action_id} refused: {e.reason}")
            return CommandResult.failed(e.reason)

        self._pending_overlays.add(resource)
        result: Optional[CommandResult] = None
        try:
            result = await self._send_overlay(action, input_config, match)
        finally:
            self._pending_overlays.discard(resource)
            if result is None or not result.success:
                self.overlays.release(action_id, previous)

        if not result.success:
            return result

        log.info(f"Overlay {action_id} on air (channel {input_config.overlay})")
        return result

    async def _send_overlay(
        self,
        action: OverlayAction,
        input_config: InputConfig,
        match: Optional[Mapping[str, Any]],
    ) -> CommandResult:
        report = PushReport()
        if action.field_values:
            card = replace(
                input_config,
                fields={
                    identifier: FieldMapping(FieldKind.TEXT, data_map_key=key)
                    for identifier, key in action.field_values.items()
                },
            )
            commands = build_field_commands(card, self.values_for_input(card, match))
            if not await self._send_all(input_config.input_id, commands, report, dedupe=False):
                return CommandResult.failed(report.errors[-1])

        try:
            await self.client.send(overlay_command(input_config, show=True))
        except RemoteUnavailable as e:
            log.warning(f"Overlay {action.action_id} show failed: {e}")
            return CommandResult.failed(str(e))
        return CommandResult.ok()

    async def hide_overlay(self, action_id: str) -> CommandResult:
        if self.overlays.is_blocked(action_id):
            return CommandResult.failed(f"{action_id} is not on air")

        input_config, error = self._overlay_input(action_id)
        if input_config is None:
            return CommandResult.failed(error)

        try:
            await self.client.send(overlay_command(input_config, show=False))
        except RemoteUnavailable as e:
            log.warning(f"Overlay {action_id} hide failed: {e}")
            return CommandResult.failed(str(e))

        self.overlays.deactivate(action_id)
        log.info(f"Overlay {action_id} hidden (channel {input_config.overlay})")
        return CommandResult.ok()

    async def refresh_overlay_state(self) -> CommandResult:
        """
        Fold vMix's overlay channels into the controller.

        Inputs shown on their channel but not held by an action become
        externally active; inputs no longer shown go idle.
        """
        try:
            state = await self.client.fetch_state()
        except RemoteUnavailable as e:
            log.warning(f"Overlay state refresh failed: {e}")
            return CommandResult.failed(str(e))

        self.remote_state = state
        on_air: Dict[str, bool] = {}
        for input_config in self.config.ordered_inputs():
            shown = _is_on_air(state, input_config)
            if input_config.input_id not in self._pending_overlays:
                self.overlays.observe(input_config.input_id, shown)
            on_air[input_config.input_id] = shown
        return CommandResult.ok(on_air)


def _locate(state: RemoteState, input_config: InputConfig) -> Optional[RemoteInputDescriptor]:
    descriptor = state.input_by_key(input_config.remote_key)
    if descriptor is not None:
        return descriptor
    title = (input_config.remote_title or "").strip()
    if title:
        for candidate in state.inputs:
            if candidate.title.strip() == title:
                return candidate
    return state.input_by_number(input_config.remote_number)


def _is_on_air(state: RemoteState, input_config: InputConfig) -> bool:
    shown = state.on_air(input_config.overlay)
    if shown is None:
        return False
    located = _locate(state, input_config)
    return located is not None and located.key == shown.key
