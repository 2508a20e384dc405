"""
LaTeX Compilation Module

Drives the external toolchain against a materialized workspace under one wall-clock
deadline. States: Idle -> ProbeTools -> {RunFullBuild | RunSinglePassLoop} -> Done.

- Full build (latexmk): one invocation, all passes handled by the driver
- Single pass (pdflatex): up to N invocations for cross-references, stopping at the
  first outright failure
- Neither: ToolingMissingError, before any tool runs

The presence of the PDF next to the main file is the success signal; exit codes
are recorded but never decide the outcome. A PDF written by an invocation that was
killed at the deadline is not trusted.
"""

import os
import signal
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from quire.contexts.rendering.exceptions import ToolingMissingError
from quire.contexts.rendering.logger import _log_debug, _log_warning, log_tool_run
from quire.contexts.rendering.tooling import TOOLING_MISSING_MESSAGE, Toolchain

# Non-interactive, stop at the first error, file:line:error messages
FULL_BUILD_ARGS = ["-pdf", "-bibtex-", "-interaction=nonstopmode", "-halt-on-error", "-file-line-error"]
SINGLE_PASS_ARGS = ["-interaction=nonstopmode", "-halt-on-error", "-file-line-error"]

# Outputs removed before compiling so a stale PDF never counts as success
STALE_OUTPUTS = [".pdf", ".log"]

TIMEOUT_MARKER = "Timeout"

# Grace period for collecting output after the process group is killed
DRAIN_TIMEOUT_S = 5.0


@dataclass
class ToolRun:
    """
    One external tool invocation.

    Attributes:
        returncode: Exit status (None if killed before reporting one)
        output: Combined stdout+stderr, decoded with replacement
        timed_out: Whether the deadline expired and the process group was killed
        elapsed_s: Wall-clock duration
    """

    returncode: Optional[int]
    output: str
    timed_out: bool
    elapsed_s: float


@dataclass
class CompilationRun:
    """
    Outcome of driving the toolchain for one request.

    Attributes:
        main_file: Absolute path of the compiled .tex file
        tool: Name of the tool that ran (e.g., 'latexmk')
        passes: Number of tool invocations
        runs: Individual invocations in order
        timed_out: Whether the budget was exhausted
    """

    main_file: Path
    tool: str
    passes: int = 0
    runs: List[ToolRun] = field(default_factory=list)
    timed_out: bool = False

    @property
    def output(self) -> str:
        return "".join(run.output for run in self.runs)

    @property
    def pdf_path(self) -> Path:
        return self.main_file.with_suffix(".pdf")

    @property
    def tool_log_path(self) -> Path:
        return self.main_file.with_suffix(".log")

    @property
    def killed(self) -> bool:
        """Whether the last invocation was killed at the deadline."""
        return bool(self.runs) and self.runs[-1].timed_out

    @property
    def success(self) -> bool:
        """
        The artifact decides, not the exit code.

        A PDF left behind by a killed invocation may be half-written and never counts.
        """
        return self.pdf_path.is_file() and not self.killed

    def record(self, run: ToolRun) -> None:
        self.runs.append(run)
        self.passes += 1
        if run.timed_out:
            self.timed_out = True


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill the child and everything it spawned (it leads its own session)."""
    if hasattr(os, "killpg"):
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    proc.kill()


def _drain(proc: subprocess.Popen) -> Optional[bytes]:
    """
    Collect remaining output from a killed process without blocking past the grace period.

    Retrying communicate() after TimeoutExpired keeps the partial output. A descendant
    that escaped the process group can hold the pipe open; then the pipe is closed and
    whatever was read so far is kept.
    """
    try:
        stdout, _ = proc.communicate(timeout=DRAIN_TIMEOUT_S)
    except subprocess.TimeoutExpired as e:
        _log_warning(f"Output pipe still open {DRAIN_TIMEOUT_S}s after kill; closing it")
        proc.stdout.close()
        proc.wait()
        return e.output
    return stdout


def run_tool(cmd: List[str], cwd: Path, timeout_s: float) -> ToolRun:
    """
    Run one command with a hard deadline.

    The child gets its own session so that on expiry the whole process tree can be
    killed; output captured up to that point is kept and a timeout line appended.

    Raises:
        OSError: If the process cannot be launched (propagated unchanged)
    """
    start_time = time.monotonic()
    proc = subprocess.Popen(
        cmd,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        start_new_session=True,
    )

    timed_out = False
    try:
        stdout, _ = proc.communicate(timeout=timeout_s)
    except subprocess.TimeoutExpired:
        timed_out = True
        _kill_process_group(proc)
        stdout = _drain(proc)

    output = (stdout or b"").decode("utf-8", errors="replace")
    if timed_out:
        output += (
            f"\n[quire] {TIMEOUT_MARKER}: {Path(cmd[0]).name} exceeded the "
            f"{timeout_s:.1f}s time budget; process group killed.\n"
        )

    return ToolRun(
        returncode=proc.returncode,
        output=output,
        timed_out=timed_out,
        elapsed_s=time.monotonic() - start_time,
    )


def _remove_stale_outputs(main_file: Path) -> None:
    for ext in STALE_OUTPUTS:
        stale = main_file.with_suffix(ext)
        if stale.exists():
            stale.unlink()


def compile_latex(
    main_file: Path,
    toolchain: Toolchain,
    timeout_s: float,
    single_pass_runs: int = 2,
) -> CompilationRun:
    """
    Compile a .tex file in its own directory with the best available tool.

    Pure orchestration - assumes the workspace is materialized and the toolchain probed.

    Args:
        main_file: Absolute path of the .tex file to compile
        toolchain: Result of probe_toolchain()
        timeout_s: Wall-clock budget shared by every pass
        single_pass_runs: Engine passes when the full-build tool is absent

    Returns:
        CompilationRun; check .success for the artifact

    Raises:
        ToolingMissingError: If neither tool is available
        OSError: If a tool cannot be launched
    """
    if not toolchain.available:
        raise ToolingMissingError(TOOLING_MISSING_MESSAGE)

    _remove_stale_outputs(main_file)
    cwd = main_file.parent
    deadline = time.monotonic() + timeout_s

    if toolchain.full_build is not None:
        tool = toolchain.full_build
        cmd = [str(tool), *FULL_BUILD_ARGS, main_file.name]
        num_passes = 1
    else:
        tool = toolchain.single_pass
        cmd = [str(tool), *SINGLE_PASS_ARGS, main_file.name]
        num_passes = single_pass_runs

    compilation = CompilationRun(main_file=main_file, tool=tool.name)
    _log_debug(f"Running {tool.name} (up to {num_passes} pass(es)) in {cwd}")

    for pass_number in range(1, num_passes + 1):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            compilation.timed_out = True
            _log_warning(f"Time budget exhausted before pass {pass_number}")
            break

        run = run_tool(cmd, cwd=cwd, timeout_s=remaining)
        compilation.record(run)
        log_tool_run(tool, pass_number, run.returncode, run.elapsed_s, run.timed_out)

        # Retrying an outright failure only burns the budget
        if run.timed_out or run.returncode != 0:
            break

    return compilation
