# run.py
import os
import uvicorn
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler("cantinaxl.log")
    ]
)

logger = logging.getLogger(__name__)

def main():
    uvicorn.run(
        "cantinaxl.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3001"))
    )

if __name__ == "__main__":
    main()
