"""
TabMind Backend Server Entry Point

Starts the FastAPI server the browser extension talks to.

Usage:
    python examples/start_server.py
"""

import sys
from pathlib import Path

# Add src to path so we can import tabmind
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tabmind.config import get_settings


def main():
    """Start the FastAPI server."""

    print("=" * 80)
    print("TabMind Backend Server")
    print("=" * 80)
    print()

    # Verify configuration
    try:
        settings = get_settings()
        print("✓ Configuration loaded")
        print(f"  - OpenAI Model: {settings.openai_llm_model}")
        if not settings.openai_api_key:
            print("  - OPENAI_API_KEY not set: hostname clustering only")
        print(f"  - Storage: {settings.storage_backend} ({settings.db_path})")
        print(f"  - Page content: {settings.page_content_source}")
        print()
    except Exception as e:
        print(f"✗ Configuration error: {e}")
        sys.exit(1)

    print("Starting FastAPI server...")
    print("Server will be available at: http://localhost:8000")
    print("API documentation: http://localhost:8000/docs")
    print()
    print("Press Ctrl+C to stop the server")
    print("=" * 80)
    print()

    import uvicorn
    from tabmind.server.app import app

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=False,
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nServer stopped by user")
        sys.exit(0)
