import os

import uvicorn
from dotenv import load_dotenv, find_dotenv

env_path = find_dotenv()
if env_path:
    load_dotenv(env_path, override=False)

if __name__ == "__main__":
    uvicorn.run(
        "gatepass.main:app",
        host=os.getenv("GATEPASS_HOST", "127.0.0.1"),
        port=int(os.getenv("GATEPASS_PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
