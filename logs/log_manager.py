import asyncio
from datetime import datetime
from typing import Callable, Optional


def log_console(message):
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] {message}", flush=True)


class LogsManager:
    """Streams the combined output of one tunnel process line by line."""

    def __init__(self, name: str, on_line: Callable[[str], None], on_exit: Optional[Callable[[], None]] = None):
        self.name = name
        self.on_line = on_line
        self.on_exit = on_exit
        self.is_streaming = False
        self._stream_task: Optional[asyncio.Task] = None

    def start_streaming(self, process):
        self.stop_current_streaming()
        self.is_streaming = True
        self._stream_task = asyncio.get_running_loop().create_task(self._stream_logs(process))

    async def _stream_logs(self, process):
        # stderr is merged into stdout when the tunnel is spawned
        try:
            while self.is_streaming:
                raw = await process.stdout.readline()
                if not raw:
                    break
                line = raw.decode(errors="replace") if isinstance(raw, bytes) else raw
                line = line.rstrip("\r\n")
                if line.strip():
                    self.on_line(line)
        except (ConnectionResetError, BrokenPipeError) as e:
            log_console(f"⚠️  Lost output stream of {self.name}: {e}")

        # a newer stream may already own this manager once ours was stopped
        if self.is_streaming and self._stream_task is asyncio.current_task():
            self.is_streaming = False
            if self.on_exit is not None:
                self.on_exit()

    def stop_current_streaming(self):
        self.is_streaming = False
        task = self._stream_task
        self._stream_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # a line handler may stop the stream it is being called from
        if task is not current:
            task.cancel()
