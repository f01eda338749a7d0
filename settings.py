import os

PAGE_SIZE_OPTIONS = (10, 25, 50, 100)


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


class Settings:
    """Upstream endpoints and tuning knobs, read from the environment."""

    def __init__(self) -> None:
        self.ASSET_API_URL: str = (os.getenv("ASSET_API_URL") or "").strip()
        self.ASSET_API_TOKEN: str = (os.getenv("ASSET_API_TOKEN") or "").strip()
        self.BORROW_API_URL: str = (os.getenv("BORROW_API_URL") or "").strip()
        self.BORROW_API_TOKEN: str = (os.getenv("BORROW_API_TOKEN") or "").strip()
        self.EMPLOYEE_API_URL: str = (os.getenv("EMPLOYEE_API_URL") or "").strip()
        self.EMPLOYEE_API_TOKEN: str = (os.getenv("EMPLOYEE_API_TOKEN") or "").strip()

        self.UPSTREAM_TIMEOUT_SECONDS: float = _as_float(os.getenv("UPSTREAM_TIMEOUT_SECONDS"), 20.0)
        self.EMPLOYEE_SEARCH_DEBOUNCE_MS: int = max(0, _as_int(os.getenv("EMPLOYEE_SEARCH_DEBOUNCE_MS"), 300))

        # abandoned views are torn down after this long without a lookup; 0 keeps them forever
        self.VIEW_IDLE_SECONDS: float = max(0.0, _as_float(os.getenv("VIEW_IDLE_SECONDS"), 1800.0))
        self.VIEW_MAX_COUNT: int = max(0, _as_int(os.getenv("VIEW_MAX_COUNT"), 500))

        page_size = _as_int(os.getenv("REPORT_DEFAULT_PAGE_SIZE"), PAGE_SIZE_OPTIONS[0])
        if page_size not in PAGE_SIZE_OPTIONS:
            page_size = PAGE_SIZE_OPTIONS[0]
        self.REPORT_DEFAULT_PAGE_SIZE: int = page_size


settings = Settings()
