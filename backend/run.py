#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Creates the tables on startup (see the app lifespan) and serves the API with
auto-reload. Use ``python -m classbook.init_db --seed`` to load sample classes.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "3000"))
    print(f"Starting development server at http://localhost:{port}")
    print(f"API docs: http://localhost:{port}/docs")

    uvicorn.run("classbook.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
