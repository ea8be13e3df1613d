from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from payroll.routers import employees, payroll
from payroll.config import LOG_LEVEL
from payroll.database import engine
from payroll import models
import logging

# Ensure application logs show informative messages
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(levelname)s:%(name)s:%(message)s"
)

models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="Payroll Engine API")

app.include_router(payroll.router, prefix="/api/payroll", tags=["payroll"])
app.include_router(employees.router, prefix="/api/employees", tags=["employees"])


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # malformed request bodies are bad input, same as a missing cutoff date
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.get("/")
def read_root():
    return {"message": "Payroll Engine API"}
