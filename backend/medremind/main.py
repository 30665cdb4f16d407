from fastapi import FastAPI, HTTPException, Query, Depends
from typing import List
import os
import logging
from datetime import datetime

from medremind.database import init_database
from medremind.schemas import UserCreate, MedicationCreate, MedicationUpdate, MedicationRead, DoseStatus
from medremind.services.repository import (
    UserRepository, MedicationRepository, get_user_repository, get_medication_repository
)
from medremind.services.schedule_service import (
    MedicationDueQuery, InvalidReportScope, parse_report_scope, evaluate
)
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MedRemind API",
    description="""
    # MedRemind - Medication Reminder API

    Keeps a user's medication list and answers which doses are due right now.

    ## Features

    * **User Management** - Create a user and receive its `user_id`
    * **Medication Management** - Create, update and remove medications
    * **Due Medications** - List medications due now, scoped to today, this week or this month
    * **Dose Status** - Treatment window and due flag for a single medication

    ## Scheduling Rules

    * **Schedule** - Eight time-of-day slots such as *Before Breakfast* (06:00-09:00)
    * **Frequency** - Daily, Weekly (Sundays), Monthly (the 15th) or As Needed (never due)
    * **Duration** - 1, 2 or 3 months from creation, or Ongoing
    """,
    version="1.0.0",
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
)

# CORS: allow all origins, methods, and headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_origin_regex=".*",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup_event():
    await init_database()

def get_clock() -> datetime:
    """The instant due-ness is evaluated at; overridden in tests."""
    return datetime.now()

async def require_user(user_id: str, users: UserRepository = Depends(get_user_repository)):
    user = await users.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

async def get_owned_medication(
    user_id: str,
    medication_id: str,
    medications: MedicationRepository,
):
    medication = await medications.get_medication(medication_id)
    if not medication:
        raise HTTPException(status_code=404, detail="Medication not found")
    if medication.user_id != user_id:
        raise HTTPException(status_code=403, detail="You are not authorized to access this medication")
    return medication

# User Management
@app.post(
    "/create-user",
    tags=["User Management"],
    summary="Create a new user",
    description="Create a new user account. Returns a unique user_id used by every medication route."
)
async def create_user(user_data: UserCreate, users: UserRepository = Depends(get_user_repository)):
    user = await users.create_user(user_data)
    return {"user_id": user.user_id, "message": "User created successfully"}

@app.get(
    "/users/{user_id}",
    tags=["User Management"],
    summary="Get user details",
    description="Retrieve user information by user ID."
)
async def get_user(user=Depends(require_user)):
    return {"user_id": user.user_id, "name": user.name, "created_at": user.created_at}

# Medication Management
@app.post(
    "/users/{user_id}/medications",
    tags=["Medication Management"],
    summary="Add medication",
    description="Add a new medication for a user. The creation time starts its treatment window.",
    response_model=MedicationRead,
    status_code=201,
)
async def add_medication(
    user_id: str,
    medication: MedicationCreate,
    user=Depends(require_user),
    medications: MedicationRepository = Depends(get_medication_repository),
):
    med = await medications.create_medication(user_id, medication)
    return MedicationRead.from_medication(med)

@app.get(
    "/users/{user_id}/medications",
    tags=["Medication Management"],
    summary="Get user medications",
    description="Retrieve all medications for a user, active or not.",
    response_model=List[MedicationRead],
)
async def get_medications(
    user_id: str,
    user=Depends(require_user),
    medications: MedicationRepository = Depends(get_medication_repository),
):
    return [MedicationRead.from_medication(m) for m in await medications.list_medications(user_id)]

@app.get(
    "/users/{user_id}/medications/due",
    tags=["Due Medications"],
    summary="Get due medications",
    description="Active medications whose dose is due now, filtered by report scope: today, week or month.",
    response_model=List[MedicationRead],
)
async def get_due_medications(
    user_id: str,
    filter: str = Query("today", description="Report scope: today, week or month"),
    user=Depends(require_user),
    medications: MedicationRepository = Depends(get_medication_repository),
    now: datetime = Depends(get_clock),
):
    try:
        scope = parse_report_scope(filter)
    except InvalidReportScope as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        due = await MedicationDueQuery(medications).run(user_id, scope, now)
    except Exception as e:
        logger.error(f"Due query failed for user {user_id}: {type(e).__name__}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve due medications: {str(e)}")

    return [MedicationRead.from_medication(m) for m in due]

@app.get(
    "/users/{user_id}/medications/{medication_id}",
    tags=["Medication Management"],
    summary="Get single medication",
    response_model=MedicationRead,
)
async def get_medication(
    user_id: str,
    medication_id: str,
    user=Depends(require_user),
    medications: MedicationRepository = Depends(get_medication_repository),
):
    medication = await get_owned_medication(user_id, medication_id, medications)
    return MedicationRead.from_medication(medication)

@app.get(
    "/users/{user_id}/medications/{medication_id}/status",
    tags=["Due Medications"],
    summary="Get dose status",
    description="Whether the medication is inside its treatment window and due at this instant.",
    response_model=DoseStatus,
)
async def get_medication_status(
    user_id: str,
    medication_id: str,
    user=Depends(require_user),
    medications: MedicationRepository = Depends(get_medication_repository),
    now: datetime = Depends(get_clock),
):
    medication = await get_owned_medication(user_id, medication_id, medications)
    return evaluate(medication, now)

@app.put(
    "/users/{user_id}/medications/{medication_id}",
    tags=["Medication Management"],
    summary="Update medication",
    description="Update an existing medication's details. The owner and creation time cannot change.",
    response_model=MedicationRead,
)
async def update_medication(
    user_id: str,
    medication_id: str,
    update_data: MedicationUpdate,
    user=Depends(require_user),
    medications: MedicationRepository = Depends(get_medication_repository),
):
    medication = await get_owned_medication(user_id, medication_id, medications)
    medication = await medications.update_medication(medication, update_data)
    return MedicationRead.from_medication(medication)

@app.delete(
    "/users/{user_id}/medications/{medication_id}",
    tags=["Medication Management"],
    summary="Delete medication",
    description="Remove a medication from the user's list."
)
async def delete_medication(
    user_id: str,
    medication_id: str,
    user=Depends(require_user),
    medications: MedicationRepository = Depends(get_medication_repository),
):
    medication = await get_owned_medication(user_id, medication_id, medications)
    await medications.delete_medication(medication)
    return {"message": "Medication deleted successfully"}

@app.get(
    "/",
    tags=["General"],
    summary="API Information",
    description="Get basic API information and links to documentation."
)
async def root():
    return {
        "message": "Welcome to MedRemind API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "openapi_schema": "/openapi.json"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
