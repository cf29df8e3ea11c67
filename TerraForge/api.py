"""
HTTP API Module

Responsibility:
- Expose catalog listings, generation and terraform runs over HTTP
- Map errors: unknown provider/service -> 404, field errors -> 422, busy environment -> 409

Run with: terraforge-api (or uvicorn api:app --app-dir TerraForge)
"""

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import API_CONFIG
from dependency_resolver import check_catalog
from errors import CatalogLookupError, RunnerBusyError
from generation_engine import generate
from resource_db import PROVIDERS, describe_service, get_service, list_providers, list_services
from terraform_runner import SEQUENCES, TerraformRunner


logger = logging.getLogger(__name__)

app = FastAPI(title="TerraForge")

# CORS middleware to allow the UI to communicate
app.add_middleware(
    CORSMiddleware,
    allow_origins=API_CONFIG["cors_origins"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

runner = TerraformRunner()


class GenerateRequest(BaseModel):
    provider: str
    service: str
    values: Dict[str, Any] = {}
    prompt: Optional[str] = None
    use_ai: bool = False


class TerraformRequest(BaseModel):
    environment: str
    files: Dict[str, str]


@app.on_event("startup")
async def startup():
    """Configure logging and fail fast if catalog and templates disagree"""
    logging.basicConfig(level=API_CONFIG["log_level"])
    check_catalog()


@app.get("/health")
async def health():
    return {"status": "healthy", "providers": list_providers()}


@app.get("/providers")
async def get_providers():
    return {
        "providers": [
            {"id": pid, "name": PROVIDERS[pid][0], "service_count": len(list_services(pid))}
            for pid in list_providers()
        ]
    }


@app.get("/providers/{provider_id}/services")
async def get_services(provider_id: str):
    try:
        services = list_services(provider_id)
    except CatalogLookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"provider": provider_id, "services": [describe_service(s) for s in services]}


@app.get("/providers/{provider_id}/services/{service_id}")
async def get_service_detail(provider_id: str, service_id: str):
    try:
        service = get_service(provider_id, service_id)
    except CatalogLookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return describe_service(service)


@app.post("/generate")
def post_generate(request: GenerateRequest):
    try:
        result = generate(request.provider, request.service, request.values,
                          prompt=request.prompt, use_ai=request.use_ai)
    except CatalogLookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not result.ok:
        raise HTTPException(status_code=422, detail={
            "message": "Invalid field values",
            "errors": [asdict(error) for error in result.errors],
        })

    return {"source": result.source, "files": result.files}


@app.post("/terraform/{operation}")
def post_terraform(operation: str, request: TerraformRequest):
    if operation not in SEQUENCES:
        raise HTTPException(status_code=404, detail=f"Unknown operation '{operation}'")

    try:
        report = getattr(runner, operation)(request.environment, request.files)
    except RunnerBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "ok": report.ok,
        "operation": operation,
        "environment": request.environment,
        "events": [
            {
                "stage": event.stage,
                "status": event.status,
                "exit_code": event.result.exit_code if event.result else None,
                "stdout": event.result.stdout if event.result else None,
                "stderr": event.result.stderr if event.result else None,
            }
            for event in report.events
        ],
    }


def serve():
    uvicorn.run(app, host=API_CONFIG["host"], port=API_CONFIG["port"], log_level=API_CONFIG["log_level"].lower())


if __name__ == "__main__":
    serve()
