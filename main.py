import os

import uvicorn

from musicalert.core.app import app  # noqa: F401
from musicalert.core.config import settings

if __name__ == "__main__":
    PORT = os.getenv("PORT", settings.PORT)
    reload = settings.APP_ENV == "development"
    uvicorn.run("musicalert.core.app:app", host="0.0.0.0", port=int(PORT), reload=reload)
