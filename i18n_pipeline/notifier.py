"""Audio cues played when a run succeeds or fails.

Playback shells out to whatever player the platform has. Candidate players
are tried in order with ``||`` so the first one available wins; nothing
about playback is ever reported as an error.
"""

import asyncio
import logging
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

ASSET_DIR = Path(__file__).parent / "assets"
PLAYBACK_TIMEOUT = 3.0
SOUND_KINDS = ("success", "failure")

# Ordered playback strategies per platform family. ``{file}`` is the sound asset.
PLAYBACK_STRATEGIES: dict[str, list[str]] = {
    "linux": [
        'ffplay -nodisp -autoexit -loglevel quiet "{file}"',
        'paplay "{file}"',
        'aplay -q "{file}"',
    ],
    "darwin": [
        'afplay "{file}"',
    ],
    "win32": [
        'powershell -NoProfile -c "try {{ (New-Object Media.SoundPlayer \'{file}\').PlaySync() }} '
        "catch {{ Start-Process -FilePath '{file}' -WindowStyle Hidden -Wait }}\"",
    ],
    "other": [
        'aplay -q "{file}"',
        'afplay "{file}"',
    ],
}

# Keeps running playbacks referenced after notify() stops waiting on them
_background: set[asyncio.Task] = set()


def platform_family(platform: str) -> str:
    """Map a ``sys.platform`` value to a key of PLAYBACK_STRATEGIES."""
    if platform.startswith("linux"):
        return "linux"
    if platform in ("darwin", "win32"):
        return platform
    return "other"


def sound_file(kind: str) -> Path:
    if kind not in SOUND_KINDS:
        raise ValueError(f"Unknown sound kind: {kind}")
    return ASSET_DIR / f"{kind}.wav"


def build_command(kind: str, platform: str) -> str:
    """Build the shell command that plays the ``kind`` sound on ``platform``."""
    file = sound_file(kind)
    strategies = PLAYBACK_STRATEGIES[platform_family(platform)]
    return " || ".join(strategy.format(file=file) for strategy in strategies)


async def _play(command: str) -> None:
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        returncode = await process.wait()
        if returncode:
            logger.debug("No sound player succeeded (exit %s)", returncode)
    except Exception as e:
        logger.debug("Sound playback failed: %s", e)


async def notify(
    kind: str,
    platform: str | None = None,
    timeout: float = PLAYBACK_TIMEOUT,
) -> None:
    """Play the ``success`` or ``failure`` sound.

    Returns when playback finishes or ``timeout`` seconds pass, whichever
    comes first. A playback still running at the deadline is left alone.
    Never raises.
    """
    try:
        command = build_command(kind, platform or sys.platform)
    except Exception as e:
        logger.debug("Sound notification skipped: %s", e)
        return

    playback = asyncio.ensure_future(_play(command))
    _background.add(playback)
    playback.add_done_callback(_background.discard)

    done, _ = await asyncio.wait({playback}, timeout=timeout)
    if not done:
        logger.debug("Sound still playing after %.1fs, continuing", timeout)
