#!/usr/bin/env python3
# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Delete expired verification codes. Run: python -m auth_actions_server.scripts.purge_expired_codes"""

import asyncio

from auth_actions_server.database import async_session_maker, init_db
from auth_actions_server.services.codes import purge_expired


async def main():
    await init_db()
    async with async_session_maker() as session:
        removed = await purge_expired(session)
    print(f"Removed {removed} expired code(s).")


if __name__ == "__main__":
    asyncio.run(main())
