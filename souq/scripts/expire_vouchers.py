# Run from cron: python -m souq.scripts.expire_vouchers
from souq.core.db import AsyncSessionLocal, init_models
from souq.core.logging_config import configure_logging
from souq.services.voucher_services.voucher_admin_service import expire_vouchers
import asyncio


async def run_expiry_sweep():
    await init_models()
    async with AsyncSessionLocal() as session:
        result = await expire_vouchers(session)
        print(f"Expired {result.expired_count} vouchers")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(run_expiry_sweep())
