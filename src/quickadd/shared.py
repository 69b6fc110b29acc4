import inspect
import textwrap
import shutil
import os
from datetime import datetime
from pathlib import Path


ELLIPSIS_CHAR = "…"


def today_at_midnight(now: datetime | None = None) -> datetime:
    now = now or datetime.now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def truncate_string(s: str, max_length: int) -> str:
    if len(s) > max_length:
        return f"{s[: max_length - 2]} {ELLIPSIS_CHAR}"
    return s


def fmt_due(dt: datetime | None, now: datetime | None = None) -> str:
    """
    Describe a due datetime the way the quick entry chips do: Today,
    Tomorrow, Yesterday, a weekday name within the coming week, otherwise
    an abbreviated month and day. A time component is appended when the
    datetime is not at midnight.
    """
    if dt is None:
        return "unscheduled"
    today = (now or datetime.now()).date()
    target = dt.date() if isinstance(dt, datetime) else dt
    diff = (target - today).days
    if diff == 0:
        label = "Today"
    elif diff == 1:
        label = "Tomorrow"
    elif diff == -1:
        label = "Yesterday"
    elif 1 < diff <= 7:
        label = target.strftime("%A")
    else:
        label = f"{target.strftime('%b')} {target.day}"
    if isinstance(dt, datetime) and (dt.hour, dt.minute) != (0, 0):
        label = f"{label} {dt.strftime('%H:%M')}"
    return label


def _get_runtime_home() -> Path:
    # resolved lazily so that importing the package never touches the disk
    from .quickadd_env import QuickAddEnvironment

    return QuickAddEnvironment().home


def _resolve_log_file_path(file_path: str | Path) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return _get_runtime_home() / path


def _default_log_relative_path(kind: str) -> Path:
    """Return logs/log_<YYMMDD>.md style paths under the runtime home."""
    suffix = datetime.now().strftime("%y%m%d")
    return Path("logs") / f"{kind}_{suffix}.md"


def log_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """
    Log a message and save it directly to a file.

    Args:
        msg (str): The message to log.
        file_path (str | Path | None, optional): Overrides the default path when
            provided. Defaults to ``None`` which writes to ``logs/log_<YYMMDD>.md``.
        print_output (bool, optional): If True, also print to console.
    """
    frame = inspect.stack()[1].frame
    func_name = frame.f_code.co_name

    # Default: just function name
    caller_name = func_name

    # Detect instance/class/static context
    if "self" in frame.f_locals:  # instance method
        cls_name = frame.f_locals["self"].__class__.__name__
        caller_name = f"{cls_name}.{func_name}"
    elif "cls" in frame.f_locals:  # classmethod
        cls_name = frame.f_locals["cls"].__name__
        caller_name = f"{cls_name}.{func_name}"
    del frame

    lines = [
        f"- {datetime.now().strftime('%H:%M:%S')} log_msg ({caller_name}):  ",
    ]
    lines.extend(
        [
            f"\n{x}"
            for x in textwrap.wrap(
                msg.strip(),
                width=max(shutil.get_terminal_size()[0] - 6, 20),
                initial_indent="   ",
                subsequent_indent="   ",
            )
        ]
    )
    lines.append("\n\n")

    if os.environ.get("QUICKADD_LOG", "1") == "0":
        if print_output:
            print("".join(lines))
        return

    # Best-effort file logging; fall back to console when the file is unwritable.
    if file_path is None:
        file_path = _default_log_relative_path("log")
    log_path = _resolve_log_file_path(file_path)

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.writelines(lines)
    except OSError:
        print_output = True

    if print_output:
        print("".join(lines))
