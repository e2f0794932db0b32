import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pymongo.errors import PyMongoError

import database
from appointments import (
    COLLECTION,
    SLOT_FIELDS,
    AppointmentError,
    AppointmentNotFound,
    create_appointment,
    delete_appointment,
    find_by_phone,
    lookup_appointment,
    update_appointment,
)
from receipts import render_receipt
from schemas import AppointmentRequest

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PORT = 5056


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.init_db() is not None:
        database.ensure_unique_index(COLLECTION, SLOT_FIELDS)
    yield
    database.close_db()


app = FastAPI(title="Beauty Parlour API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppointmentError)
async def appointment_error_handler(request: Request, exc: AppointmentError):
    logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(PyMongoError)
@app.exception_handler(Exception)
async def fault_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} - Error: {str(exc)}")
    return PlainTextResponse(str(exc), status_code=500)


@app.get("/", response_class=PlainTextResponse)
def read_root():
    return "Welcome to the Beauty Parlour API"


@app.get("/test")
def test_database():
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        db = database.db
        if db is not None:
            response["database"] = "Available"
            response["database_name"] = db.name
            response["connection_status"] = "Connected"
            try:
                collections = db.list_collection_names()
                response["collections"] = collections[:10]
                response["database"] = "Connected & Working"
            except Exception as e:
                response["database"] = f"Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "Available but not initialized"
    except Exception as e:
        response["database"] = f"Error: {str(e)[:50]}"
    response["database_url"] = "Set" if os.getenv("DATABASE_URL") else "Not Set"
    return response


@app.get("/appointments/{phone}")
def get_appointment(phone: str):
    return lookup_appointment(phone)


@app.get("/appointments/{phone}/receipt")
def get_receipt_pdf(phone: str):
    appt = find_by_phone(phone)
    if appt is None:
        raise AppointmentNotFound()
    headers = {"Content-Disposition": f"inline; filename=appointment_{phone}.pdf"}
    return StreamingResponse(render_receipt(appt), media_type="application/pdf", headers=headers)


@app.post("/appointments", status_code=201)
def post_appointment(payload: AppointmentRequest):
    return create_appointment(payload)


@app.put("/appointments/{phone}")
def put_appointment(phone: str, payload: AppointmentRequest):
    return update_appointment(phone, payload)


@app.delete("/appointments/{phone}")
def remove_appointment(phone: str):
    return delete_appointment(phone)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
