import os

import uvicorn

from chat_ledger.app import app
from chat_ledger.logger import get_logging_config

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port, log_config=get_logging_config())
