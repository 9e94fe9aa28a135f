from pathlib import Path

def repo_root() -> Path:
    # repo root (holds calendar_engine/)
    return Path(__file__).resolve().parents[3]

def win_quote(arg: str) -> str:
    if not arg:
        return '""'
    if any(c.isspace() for c in arg) or '"' in arg or "'" in arg or "\\" in arg:
        return f'"{arg}"'
    return arg
