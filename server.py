# Deployment entry point: `python server.py` or `uvicorn server:app`
from eventsync.main import app, main

if __name__ == "__main__":
    main()
