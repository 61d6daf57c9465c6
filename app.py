"""Production entry point for PromptEnhancer using uvicorn workers"""

import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    PORT = int(os.getenv("PORT", "8000"))
    HOST = os.getenv("HOST", "127.0.0.1")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
    WORKERS = int(os.getenv("WORKERS", "2"))

    print(f"Starting PromptEnhancer in {ENVIRONMENT} mode...")
    print(f"Host: {HOST}, Port: {PORT}, Workers: {WORKERS}")

    uvicorn.run(
        "web_app.main:create_app",
        factory=True,
        host=HOST,
        port=PORT,
        workers=WORKERS if ENVIRONMENT == "production" else 1,
        log_level="info",
        access_log=True,
    )
