import asyncio

from .actor import main

asyncio.run(main())
