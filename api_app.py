"""FastAPI entrypoint for uvicorn.

Run: `uvicorn api_app:app --reload`
Serves the API at both `/` and `/api` so local runs match the serverless deployment.
"""

from fastapi import FastAPI

from backstory.backend.app import app as backstory_app

app = FastAPI(title="Backstory")
app.mount("/api", backstory_app)
app.mount("/", backstory_app)
