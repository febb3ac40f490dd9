#!/usr/bin/env python3
"""
Run script for the api-auth service.
This script launches the FastAPI app built by api_auth.main.create_app.
"""
import os
import sys
import traceback

import uvicorn

if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    try:
        print("Starting api-auth server...")
        print(f"Access the API at http://localhost:{port}/api")
        print(f"API documentation at http://localhost:{port}/docs")

        uvicorn.run(
            "api_auth.main:create_app",
            factory=True,
            host=host,
            port=port,
            reload=os.getenv("RELOAD", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "info").lower()
        )
    except Exception as e:
        print(f"Error starting server: {e}")
        traceback.print_exc()
        sys.exit(1)
