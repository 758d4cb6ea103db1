from datetime import date

import fx_fetcher
from fx_fetcher import Settings, run_fx_fetch
from fx_fetcher.config import DatabaseConnectionInfo
from fx_fetcher.db import create_backend

print(fx_fetcher.__version__)  # 0.1.0

# Settings from the environment (KOREA_EXIM_API_KEY, ECOS_API_KEY, DATABASE_URL)
settings = Settings.from_env()

# Today's run (KST) against the configured database
result = run_fx_fetch(settings)
print(result.to_dict())
# => {'success': True, 'message': '...', 'inserted_count': 4, 'search_date': '20240103', ...}

# Backfill a specific day into a local SQLite file
local = Settings(
    koreaexim_api_key=settings.koreaexim_api_key,
    ecos_api_key=settings.ecos_api_key,
    database=DatabaseConnectionInfo.from_url("sqlite:///fx_rates.db"),
    ensure_schema=True,
)
print(run_fx_fetch(local, search_date=date(2024, 3, 15)).to_dict())

# Read back what was stored
with create_backend(local.database) as backend:
    for row in backend.fetch_rates(date(2024, 3, 1), date(2024, 3, 31)):
        print(row.base_date, row.currency_code, row.deal_bas_r, row.ttb, row.tts)
    print(backend.fetch_policy_rates("722Y001")[-1:])
