"""
======================================================================
 Scoreboard vMix Bridge — Version v0.1.0 (Build 2026.10)
======================================================================

Runtime entry point: mirror a match file onto vMix.

    python -m core.app [--settings settings.json] [--match match.json] [--once]
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from core.match_watcher import MatchFileWatcher, load_match
from core.sync import SyncOrchestrator
from runtime.version import as_string
from services.vmix.client import VMixClient
from shared.config.vmix import VMixRuntimeConfig
from shared.logging.logger import get_logger
from shared.storage.settings_store import SettingsStore
from shared.vmix.models import VMixConfig

log = get_logger("core.app")


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mirror scoreboard match data onto vMix inputs")
    parser.add_argument("--settings", type=Path, default=None, help="Settings JSON (default: SCOREBOARD_SETTINGS_PATH)")
    parser.add_argument("--match", type=Path, default=None, help="Match JSON to mirror (default: SCOREBOARD_MATCH_PATH)")
    parser.add_argument("--once", action="store_true", help="Refresh inputs, push the match once and exit")
    parser.add_argument("--version", action="version", version=as_string())
    return parser.parse_args(argv)


def build_orchestrator(cfg: VMixRuntimeConfig, store: SettingsStore) -> SyncOrchestrator:
    raw = store.load_vmix()
    if not raw:
        log.info(f"No vMix settings in {store.path}; starting with {cfg.host}:{cfg.port}")
        raw = {"host": cfg.host, "port": cfg.port}

    def _persist(config: VMixConfig) -> None:
        try:
            store.save_vmix(orchestrator.export())
        except OSError as e:
            log.error(f"Failed to persist vMix settings: {e}")

    client = VMixClient(
        cfg.host,
        cfg.port,
        timeout=cfg.command_timeout,
        discovery_timeout=cfg.discovery_timeout,
    )
    orchestrator = SyncOrchestrator(client, asset_base_url=cfg.asset_base_url)
    orchestrator.load(raw)
    if orchestrator.export() != raw:
        _persist(orchestrator.config)
    orchestrator.on_config_change = _persist
    return orchestrator


async def _connect_and_refresh(orchestrator: SyncOrchestrator) -> bool:
    result = await orchestrator.check_connection()
    if not result.success:
        log.warning(f"vMix not reachable: {result.error}")
        return False

    report = await orchestrator.refresh_inputs()
    if report.unresolved_ids:
        log.info(f"{len(report.unresolved_ids)} input(s) still unresolved in vMix: {', '.join(report.unresolved_ids)}")
    return report.ok


async def _poll(orchestrator: SyncOrchestrator, interval: float, stop_event: asyncio.Event) -> None:
    connected = orchestrator.client.connected
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
        if stop_event.is_set():
            break

        if not connected:
            connected = await _connect_and_refresh(orchestrator)
            continue

        result = await orchestrator.refresh_overlay_state()
        connected = result.success


async def main(stop_event: asyncio.Event, args: argparse.Namespace) -> int:
    load_dotenv()
    cfg = VMixRuntimeConfig.from_env()
    if args.settings:
        cfg.settings_path = str(args.settings)
    if args.match:
        cfg.match_path = str(args.match)

    log.info(f"{as_string()} booting")
    store = SettingsStore(cfg.settings_path)
    orchestrator = build_orchestrator(cfg, store)

    try:
        await _connect_and_refresh(orchestrator)

        if args.once:
            if not cfg.match_path:
                log.warning("--once without a match file; nothing to push")
                return 0
            match = load_match(Path(cfg.match_path))
            if match is None:
                log.error(f"No readable match at {cfg.match_path}")
                return 1
            report = await orchestrator.push_match(match, force=True)
            log.info(f"Pushed {report.sent} field(s)")
            return 0 if report.ok else 1

        tasks = [asyncio.create_task(_poll(orchestrator, cfg.poll_interval, stop_event))]
        if cfg.match_path:
            watcher = MatchFileWatcher(cfg.match_path, orchestrator.push_match)
            tasks.append(asyncio.create_task(watcher.run(stop_event)))
        else:
            log.info("No match file configured; only tracking overlay state")

        await stop_event.wait()
        log.info("Shutdown initiated")
        await asyncio.gather(*tasks)
        return 0
    finally:
        await orchestrator.client.close()
        log.info("Scoreboard vMix bridge stopped")


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    def _handler(signum, frame):
        loop.call_soon_threadsafe(stop_event.set)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _install_signal_handlers(loop, stop_event)

    try:
        return loop.run_until_complete(main(stop_event, args))
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        asyncio.set_event_loop(None)
        loop.close()


if __name__ == "__main__":
    sys.exit(run())
