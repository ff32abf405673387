"""
Media playback primitive.

The engine talks to exactly one MediaElement: an object with src,
current_time, duration and volume attributes, load/play/pause methods, and
loadedmetadata / timeupdate / ended / play / pause events.

MpvMediaElement implements it on top of mpv's JSON IPC socket. mpv has no
push events on this channel, so poll() (called from the UI loop) reads the
relevant properties and emits the corresponding events.
"""

import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from loguru import logger

MEDIA_EVENTS = ("loadedmetadata", "timeupdate", "ended", "play", "pause")

# Minimum valid duration (seconds) - durations below this indicate metadata errors
MIN_VALID_DURATION = 10.0

# Minimum playback time before allowing "track finished" (seconds)
MIN_PLAYBACK_TIME = 3.0

Handler = Callable[[], None]


class PlaybackError(Exception):
    """Raised when the media element refuses or fails to play."""

    pass


class MediaElement(Protocol):
    src: str
    current_time: float
    duration: float
    volume: float

    def load(self) -> None: ...

    def play(self) -> None:
        """Start playback. Raises PlaybackError when playback is rejected."""
        ...

    def pause(self) -> None: ...

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register handler for event and return a function removing it."""
        ...


class EventEmitterMixin:
    """Handler registry shared by media element implementations."""

    def _handlers(self) -> Dict[str, List[Handler]]:
        if not hasattr(self, "_event_handlers"):
            self._event_handlers: Dict[str, List[Handler]] = {
                event: [] for event in MEDIA_EVENTS
            }
        return self._event_handlers

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        if event not in MEDIA_EVENTS:
            raise ValueError(f"Unknown media event {event!r}")
        handlers = self._handlers()[event]
        handlers.append(handler)

        def remove() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return remove

    def emit(self, event: str) -> None:
        for handler in list(self._handlers().get(event, [])):
            handler()


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def _ipc_request(socket_path: Optional[str], command: Dict[str, Any]) -> Optional[Dict]:
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(2.0)
        sock.connect(socket_path)

        command_json = json.dumps(command) + "\n"
        sock.send(command_json.encode("utf-8"))

        response = sock.recv(4096).decode("utf-8").strip()
        sock.close()
    except (socket.error, OSError):
        return None

    if not response:
        return {}

    # mpv may interleave event lines; the reply is the line carrying "error"
    for line in response.splitlines():
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if "error" in data:
            return data
    return None


def send_mpv_command(socket_path: Optional[str], command: Dict[str, Any]) -> bool:
    """Send JSON IPC command to MPV."""
    response = _ipc_request(socket_path, command)
    if response is None:
        return False
    return not response or response.get("error") == "success"


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from MPV."""
    response = _ipc_request(socket_path, {"command": ["get_property", property_name]})
    if response and response.get("error") == "success":
        return response.get("data")
    return None


class MpvMediaElement(EventEmitterMixin):
    """MediaElement backed by an mpv process with JSON IPC."""

    def __init__(self, socket_path: Optional[str] = None, volume: float = 0.75):
        if socket_path is None:
            temp_dir = Path(tempfile.gettempdir())
            socket_path = str(temp_dir / f"wavify-mpv-{os.getpid()}")
        self.socket_path = socket_path
        self.process: Optional[subprocess.Popen] = None
        self.src = ""
        self._volume = max(0.0, min(1.0, volume))
        self._playback_started_at: Optional[float] = None
        self._metadata_emitted = False
        self._ended_emitted = False
        self._last_position: Optional[float] = None
        self._last_paused: Optional[bool] = None

    # Process lifecycle

    def start(self) -> bool:
        """Start mpv in idle mode with the IPC server enabled."""
        logger.info(f"Starting MPV player with socket: {self.socket_path}")

        try:
            if os.path.exists(self.socket_path):
                logger.debug(f"Removing existing socket: {self.socket_path}")
                os.unlink(self.socket_path)

            cmd = [
                "mpv",
                "--idle=yes",
                "--no-video",
                "--no-terminal",
                f"--input-ipc-server={self.socket_path}",
                f"--volume={round(self._volume * 100)}",
                "--keep-open=yes",
                "--load-scripts=no",
            ]

            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )

            # Wait for socket to be created
            timeout = 5.0
            start_time = time.time()
            while not os.path.exists(self.socket_path):
                if time.time() - start_time > timeout:
                    logger.error(f"MPV socket creation timeout after {timeout}s")
                    self.process.kill()
                    self.process = None
                    return False
                time.sleep(0.1)

            if send_mpv_command(
                self.socket_path, {"command": ["get_property", "idle-active"]}
            ):
                logger.info("MPV started successfully")
                return True

            logger.error("MPV socket connection test failed")
            self.process.kill()
            self.process = None
            return False

        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start MPV: {e}")
            self.process = None
            return False

    def stop(self) -> None:
        """Stop the mpv process and remove its socket."""
        if self.process:
            try:
                self.process.kill()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired):
                pass  # Process already terminated or couldn't be killed
            self.process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass

    @property
    def running(self) -> bool:
        if not self.process or self.process.poll() is not None:
            return False
        return os.path.exists(self.socket_path)

    # MediaElement interface

    @property
    def current_time(self) -> float:
        position = get_mpv_property(self.socket_path, "time-pos")
        return float(position) if position is not None else 0.0

    @current_time.setter
    def current_time(self, seconds: float) -> None:
        if send_mpv_command(
            self.socket_path, {"command": ["seek", max(0.0, seconds), "absolute"]}
        ):
            self._ended_emitted = False

    @property
    def duration(self) -> float:
        duration = get_mpv_property(self.socket_path, "duration")
        return float(duration) if duration is not None else 0.0

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = max(0.0, min(1.0, value))
        send_mpv_command(
            self.socket_path,
            {"command": ["set_property", "volume", round(self._volume * 100)]},
        )

    def load(self) -> None:
        """Load src paused at position 0."""
        if not self.running:
            raise PlaybackError("mpv is not running")
        if not self.src:
            return

        send_mpv_command(self.socket_path, {"command": ["set_property", "pause", True]})
        if not send_mpv_command(
            self.socket_path, {"command": ["loadfile", self.src, "replace"]}
        ):
            raise PlaybackError(f"mpv could not load {self.src}")

        logger.debug(f"Loaded media: {self.src}")
        self._metadata_emitted = False
        self._ended_emitted = False
        self._last_position = None
        self._last_paused = True
        self._playback_started_at = None

    def play(self) -> None:
        if not self.running:
            raise PlaybackError("mpv is not running")
        if not self.src:
            raise PlaybackError("No media source loaded")

        if not send_mpv_command(
            self.socket_path, {"command": ["set_property", "pause", False]}
        ):
            raise PlaybackError("mpv rejected play command")

        if self._playback_started_at is None or self._ended_emitted:
            self._playback_started_at = time.time()
        self._ended_emitted = False
        self._last_paused = False
        self.emit("play")

    def pause(self) -> None:
        if not self.running:
            return
        if send_mpv_command(self.socket_path, {"command": ["set_property", "pause", True]}):
            self._last_paused = True
            self.emit("pause")

    # Event pump

    def is_track_finished(self, position: float, duration: float, eof: Any) -> bool:
        """Check if track finished with multiple validation layers.

        Safeguards:
        1. Minimum playback time (prevents incomplete metadata issues)
        2. Duration sanity check (detects corrupted/incomplete metadata)
        3. Position-based completion check
        4. EOF flag validation (with position confirmation)
        """
        # SAFEGUARD 1: Minimum playback time
        if self._playback_started_at is not None:
            elapsed = time.time() - self._playback_started_at
            if elapsed < MIN_PLAYBACK_TIME:
                return False

        # SAFEGUARD 2: Duration sanity check
        if 0 < duration < MIN_VALID_DURATION:
            logger.warning(
                f"is_track_finished: Suspicious duration={duration:.2f}s, "
                f"ignoring position-based checks"
            )
            return eof is True and position >= duration - 0.1

        # SAFEGUARD 3: Position-based check (primary)
        finished_by_position = duration > 0 and position >= duration - 0.5

        # SAFEGUARD 4: EOF flag check (secondary)
        finished_by_eof = eof is True and duration > 0 and position >= duration - 1.0

        return finished_by_position or finished_by_eof

    def poll(self) -> None:
        """Read mpv state and emit the events that happened since the last poll."""
        if not self.running or not self.src:
            return

        position = get_mpv_property(self.socket_path, "time-pos")
        duration = get_mpv_property(self.socket_path, "duration")
        paused = get_mpv_property(self.socket_path, "pause")
        eof = get_mpv_property(self.socket_path, "eof-reached")

        if duration and duration > 0 and not self._metadata_emitted:
            self._metadata_emitted = True
            self.emit("loadedmetadata")

        if position is not None and position != self._last_position:
            self._last_position = position
            self.emit("timeupdate")

        if (
            not self._ended_emitted
            and position is not None
            and self.is_track_finished(float(position), float(duration or 0.0), eof)
        ):
            self._ended_emitted = True
            self._last_paused = True
            logger.debug(f"Track ended: {self.src}")
            self.emit("ended")
            return

        if paused is not None and paused != self._last_paused:
            self._last_paused = paused
            self.emit("pause" if paused else "play")
