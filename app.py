from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import os
from exceptions import CorbanError
from services.auth.router import router as auth_router
from services.benefits.router import router as benefits_router
from services.client_markers.router import admin_router as negotiations_router
from services.client_markers.router import router as client_markers_router
from services.consultations.router import router as consultations_router
from services.digitizations.router import router as digitizations_router
from services.favorites.router import router as favorites_router
from services.notifications.router import router as notifications_router
from services.proposals.router import router as proposals_router
from services.proposals.registry import close_partner_banks
from utils.mongo import close_mongo_connection
import uvicorn


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_partner_banks()
    close_mongo_connection()


app = FastAPI(
    title="Consulta INSS e Refinanciamento",
    version="1.0",
    description="Consulta de benefícios INSS e refinanciamento com bancos parceiros.",
    lifespan=lifespan,
)


@app.exception_handler(CorbanError)
async def corban_exception_handler(request: Request, exc: CorbanError):
    """Erros de negócio e de parceiros sempre com título e descrição para o operador"""
    logger.error(f"{exc.title}: {exc.message} ({request.method} {request.url.path})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler para erros de validação"""
    error_details = []
    for error in exc.errors():
        error_details.append(
            {
                "loc": " -> ".join(str(loc) for loc in error["loc"]),
                "msg": error["msg"],
                "type": error["type"],
            }
        )
    logger.error(f"Validation error: {error_details}")
    return JSONResponse(
        status_code=422,
        content={
            "error": "Verifique os campos informados",
            "title": "Dados Inválidos",
            "details": error_details,
            "status": 422,
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(benefits_router)
app.include_router(consultations_router)
app.include_router(client_markers_router)
app.include_router(negotiations_router)
app.include_router(favorites_router)
app.include_router(notifications_router)
app.include_router(digitizations_router)
app.include_router(proposals_router)

if __name__ == "__main__":
    uvicorn.run("app:app", host="0.0.0.0", port=int(os.getenv("PORT", "8002")), reload=True)
