"""
Start Resume Analyzer Service
"""
import sys
from pathlib import Path

# Add backend to path
backend_root = Path(__file__).parent.parent
sys.path.insert(0, str(backend_root))

# Load environment variables
from dotenv import load_dotenv
env_path = backend_root / ".env"
load_dotenv(dotenv_path=env_path)

from resume_analyzer.config import load_settings

settings = load_settings()

# Print status
print("=" * 50)
print("📄 Starting Resume Analyzer Service")
print("=" * 50)
for key, state in settings.status().items():
    print(f"✅ {key}: {state}")
print("=" * 50)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "resume_analyzer.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True
    )
