"""Человекочитаемый размер файла для логов и статистики."""

_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_file_size(size_bytes: int | None) -> str:
    """1536 -> «1.5 KB», 0 -> «0 Bytes» (не больше двух знаков после точки)."""
    value = float(size_bytes or 0)
    if value <= 0:
        return "0 Bytes"
    i = 0
    while value >= 1024 and i < len(_UNITS) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {_UNITS[i]}"
