"""
subprocess_utils
----------------

aws / docker / git 호출을 감싸는 공통 유틸.

모든 외부 명령은 run_command 를 통해 실행되며,
성공하면 RunResult 를, 실패하면 CommandError(또는 ToolNotFoundError)를 던진다.
호출부는 종료 코드를 직접 들여다보지 않는다.
"""

from __future__ import annotations

import queue
import shutil
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from textwrap import shorten
from typing import Callable, Mapping, Sequence

from .errors import CommandError, ToolNotFoundError
from .logging_utils import get_logger


logger = get_logger(__name__)

DEFAULT_TIMEOUT = 900.0

_BRAILLE_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]
_ASCII_FRAMES = ["|", "/", "-", "\\"]


@dataclass(frozen=True)
class ProgressSettings:
    """
    idle 진행 표시 설정.

    전역 변수 대신 DeployConfig 에서 만들어 run_command 에 넘긴다.
    """

    show: bool = True
    idle_seconds: float = 2.0
    style: str = "braille"  # braille | ascii
    interval: float = 0.12


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str


def find_executable(name: str) -> str | None:
    return shutil.which(name)


def _is_tty(stream) -> bool:  # noqa: ANN001
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def _format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:0.1f}s"
    minutes = int(seconds // 60)
    sec = int(seconds % 60)
    return f"{minutes}m{sec:02d}s"


class _IdleProgressIndicator:
    """
    일정 시간 출력이 없을 때만 stderr 에 스피너 + 경과시간을 그린다.

    services-stable 대기처럼 수 분간 아무 출력이 없는 명령에서
    '멈춘 것 같은' 상태를 피하기 위한 용도.
    """

    def __init__(self, message: str, settings: ProgressSettings, *, stream=None) -> None:  # noqa: ANN001
        self._message = message
        self._stream = stream if stream is not None else sys.stderr
        self._frames = _ASCII_FRAMES if settings.style.strip().lower() == "ascii" else _BRAILLE_FRAMES
        self._interval = max(float(settings.interval), 0.02)
        self._idle_seconds = max(float(settings.idle_seconds), 0.0)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_len = 0
        self._shown = False

    def _render(self, idx: int, elapsed: float) -> None:
        text = f"{self._frames[idx % len(self._frames)]} {self._message}  {_format_elapsed(elapsed)}"
        self._last_len = max(self._last_len, len(text))
        self._stream.write("\r" + text)
        self._stream.flush()
        self._shown = True

    def clear(self) -> None:
        if not self._shown:
            return
        self._stream.write("\r" + (" " * self._last_len) + "\r")
        self._stream.flush()
        self._shown = False

    def start(self, started: float, last_activity: Callable[[], float]) -> None:
        def _run() -> None:
            idx = 0
            while not self._stop.is_set():
                now = time.monotonic()
                idle = now - last_activity()
                if idle < self._idle_seconds:
                    self.clear()
                    time.sleep(min(self._interval, max(self._idle_seconds - idle, 0.02)))
                    continue
                self._render(idx, now - started)
                idx += 1
                time.sleep(self._interval)

        self._thread = threading.Thread(target=_run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        self.clear()


def _failure_detail(stdout: str, stderr: str) -> str:
    stdout = (stdout or "").strip()
    stderr = (stderr or "").strip()
    if stderr:
        return "stderr:\n" + shorten(stderr, width=2000)
    if stdout:
        return "stdout:\n" + shorten(stdout, width=2000)
    return ""


def _timeout_error(cmd: Sequence[str], timeout: float | None) -> CommandError:
    return CommandError(
        cmd,
        None,
        message=f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}",
    )


def _stream(
    cmd: Sequence[str],
    *,
    cwd: str | None,
    env: Mapping[str, str] | None,
    timeout: float | None,
    indicator: _IdleProgressIndicator | None,
) -> RunResult:
    # docker 는 진행 로그를 stderr 로도 내보내므로 STDOUT 으로 합친다.
    try:
        proc = subprocess.Popen(  # noqa: S603
            list(cmd),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(cmd) from e

    started = time.monotonic()
    deadline = None if timeout is None else started + float(timeout)
    activity = {"last": started}
    lines: "queue.Queue[str | None]" = queue.Queue()
    out: list[str] = []

    def _reader() -> None:
        try:
            assert proc.stdout is not None
            for line in proc.stdout:
                lines.put(line)
        finally:
            lines.put(None)

    reader = threading.Thread(target=_reader, daemon=True)
    reader.start()
    if indicator is not None:
        indicator.start(started, lambda: activity["last"])

    try:
        while True:
            if deadline is not None and time.monotonic() >= deadline:
                proc.kill()
                proc.wait()
                raise _timeout_error(cmd, timeout)
            try:
                item = lines.get(timeout=0.1)
            except queue.Empty:
                continue
            if item is None:
                break
            if indicator is not None:
                indicator.clear()
            out.append(item)
            sys.stdout.write(item)
            sys.stdout.flush()
            activity["last"] = time.monotonic()

        reader.join(timeout=1.0)
        wait_timeout = None if deadline is None else max(deadline - time.monotonic(), 0.0)
        returncode = proc.wait(timeout=wait_timeout)
    except subprocess.TimeoutExpired as e:
        proc.kill()
        proc.wait()
        raise _timeout_error(cmd, timeout) from e
    finally:
        if proc.stdout is not None:
            proc.stdout.close()
        if indicator is not None:
            indicator.stop()

    combined = "".join(out)
    if returncode != 0:
        raise CommandError(cmd, returncode, _failure_detail(combined, ""))
    return RunResult(returncode=returncode, stdout=combined, stderr="")


def run_command(
    cmd: Sequence[str],
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    input_text: str | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
    stream_output: bool = False,
    secret_output: bool = False,
    spinner_message: str | None = None,
    progress: ProgressSettings | None = None,
) -> RunResult:
    """
    외부 명령 실행 공통 유틸.

    - stream_output=False: stdout/stderr 캡처, 실패 시 요약을 CommandError 에 포함
    - stream_output=True : 출력을 실시간으로 터미널에 흘린다 (docker build/push 등)
    - input_text         : stdin 으로 전달 (docker login --password-stdin)
    - secret_output=True : stdout 을 DEBUG 로그에도 남기지 않는다 (ECR 토큰)
    - timeout=None       : 로컬 타임아웃 없음 (services-stable 대기)
    """
    logger.info("명령 실행: %s", " ".join(cmd))

    settings = progress or ProgressSettings()
    indicator: _IdleProgressIndicator | None = None
    if settings.show and _is_tty(sys.stderr):
        message = spinner_message or shorten(" ".join(cmd), width=72, placeholder="…")
        indicator = _IdleProgressIndicator(message, settings, stream=sys.stderr)

    if stream_output:
        return _stream(cmd, cwd=cwd, env=env, timeout=timeout, indicator=indicator)

    # capture 모드: 출력이 없으므로 시작 시각을 마지막 활동으로 본다.
    started = time.monotonic()
    if indicator is not None:
        indicator.start(started, lambda: started)

    try:
        result = subprocess.run(  # noqa: S603
            list(cmd),
            input=input_text,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(cmd) from e
    except subprocess.TimeoutExpired as e:
        raise _timeout_error(cmd, timeout) from e
    finally:
        if indicator is not None:
            indicator.stop()

    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if result.returncode != 0:
        raise CommandError(cmd, result.returncode, _failure_detail(stdout, stderr))

    if stdout and not secret_output:
        logger.debug("명령 stdout: %s", shorten(stdout.strip(), width=2000))
    if stderr:
        logger.debug("명령 stderr: %s", shorten(stderr.strip(), width=2000))
    return RunResult(returncode=result.returncode, stdout=stdout, stderr=stderr)
