import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from split_ledger.core.config import settings
from split_ledger.db.database import Base, engine
from split_ledger.api.v1.routes.groups import router as groups_router
from split_ledger.api.v1.routes.expenses import router as expenses_router
from split_ledger.api.v1.routes.settlements import router as settlements_router
from split_ledger.utils.errors import InvariantViolation, ValidationError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Split Ledger - Balances",
    description="Records group expenses and settlements and works out who owes whom",
    version="1.0.0"
)

app.include_router(groups_router)
app.include_router(expenses_router)
app.include_router(settlements_router)


@app.exception_handler(ValidationError)
def handle_validation_error(request: Request, exc: ValidationError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=400,
        content={
            "detail": exc.message,
            "expected": None if exc.expected is None else str(exc.expected),
            "actual": None if exc.actual is None else str(exc.actual)
        }
    )


@app.exception_handler(InvariantViolation)
def handle_invariant_violation(request: Request, exc: InvariantViolation):
    logger.error(f"Invariant violation while serving {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"detail": "Internal ledger inconsistency"})


@app.get("/")
def read_root():
    return {"message": "Split Ledger API", "version": "1.0.0"}

@app.get("/health")
def health_check():
    return {"status": "healthy"}
