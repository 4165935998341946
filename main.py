import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import DEFAULT_SECRET_KEY, Settings, get_settings
from database import TASKS, USERS, RecordStore, get_store
from schemas import Message, Task, TaskCreate, Token, UserCreate, UserLogin, UserPublic
from security import create_access_token, get_current_user, get_password_hash, verify_password
from validation import FieldValidationError, validate_registration, validate_task

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("taskmanager")
auth_logger = logging.getLogger("taskmanager.auth")
task_logger = logging.getLogger("taskmanager.tasks")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.secret_key == DEFAULT_SECRET_KEY:
        logger.warning("SECRET_KEY is not set, tokens are signed with the placeholder key.")
    if settings.debug_endpoints:
        logger.warning("Debug endpoints are enabled and unauthenticated.")
    logger.info(f"Server running on port {settings.port} (data dir: {settings.data_dir})")
    yield


# Initialize FastAPI
app = FastAPI(title="Task Manager", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

CurrentUser = Annotated[str, Depends(get_current_user)]
Store = Annotated[RecordStore, Depends(get_store)]


# --- Error responses ---
# Every error is answered as {"message": ...}, missing fields as {"errors": {...}}.
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


@app.exception_handler(FieldValidationError)
async def field_validation_handler(request: Request, exc: FieldValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": exc.errors})


# Bodies that are not a JSON object (or not JSON at all) are bad requests too.
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
        errors[field] = error["msg"]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})


def task_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


# --- API Endpoints ---
@app.get("/", response_class=PlainTextResponse)
def read_root():
    return "Welcome to my server!"


# Endpoint for user registration
@app.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register_user(
    store: Store,
    settings: Annotated[Settings, Depends(get_settings)],
    user: Optional[UserCreate] = None,
):
    payload = validate_registration((user or UserCreate()).model_dump())
    email = payload["email"]
    if any(u["email"] == email for u in store.load(USERS)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    try:
        hashed_password = get_password_hash(payload["password"])
    except (ValueError, TypeError) as e:
        auth_logger.error(f"Password hashing failed for {email}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error hashing password")

    with store.transaction(USERS) as users:
        # Another registration may have landed while the password was hashing
        if any(u["email"] == email for u in users):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")
        users.append({**payload, "password": hashed_password})

    auth_logger.info(f"User registered: {email}")
    return {"token": create_access_token({"email": email}, settings)}


# Endpoint for user login to get a token
@app.post("/login", response_model=Token)
def login_for_access_token(
    store: Store,
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Optional[UserLogin] = None,
):
    credentials = credentials or UserLogin()
    if not credentials.email or not credentials.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    user = next((u for u in store.load(USERS) if u["email"] == credentials.email), None)
    if not user or not verify_password(credentials.password, user["password"]):
        auth_logger.warning(f"Failed login for {credentials.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    auth_logger.info(f"User logged in: {credentials.email}")
    return {"token": create_access_token({"email": user["email"]}, settings)}


# --- Task Endpoints ---
# Every task operation filters on the caller's email; that filter is the only
# thing keeping users apart.
@app.get("/tasks", response_model=List[Task])
def read_tasks(current_user: CurrentUser, store: Store):
    return [task for task in store.load(TASKS) if task["email"] == current_user]


@app.get("/tasks/{task_id}", response_model=Task)
def read_task(task_id: str, current_user: CurrentUser, store: Store):
    task = next((t for t in store.load(TASKS) if str(t["id"]) == task_id and t["email"] == current_user), None)
    if task is None:
        raise task_not_found()
    return task


@app.post("/tasks", response_model=Task)
def create_task(current_user: CurrentUser, store: Store, task: Optional[TaskCreate] = None):
    fields = validate_task((task or TaskCreate()).model_dump())
    new_task = {
        "email": current_user,
        **{k: v for k, v in fields.items() if k not in ("status", "date")},
        "status": fields.get("status") or "pending",
        "date": fields.get("date") or datetime.now(timezone.utc).isoformat(),
    }
    with store.transaction(TASKS) as tasks:
        # Creation time in ms, bumped past the newest id when two land in the same ms
        new_task = {"id": max([int(time.time() * 1000)] + [t["id"] + 1 for t in tasks]), **new_task}
        tasks.append(new_task)
    task_logger.info(f"Task {new_task['id']} created for {current_user}")
    return new_task


@app.put("/tasks/{task_id}", response_model=Task)
def update_task(task_id: str, current_user: CurrentUser, store: Store, task: Optional[TaskCreate] = None):
    changes = validate_task((task or TaskCreate()).model_dump(exclude_none=True))
    with store.transaction(TASKS) as tasks:
        index = next(
            (i for i, t in enumerate(tasks) if str(t["id"]) == task_id and t["email"] == current_user),
            None,
        )
        if index is None:
            raise task_not_found()
        tasks[index] = {**tasks[index], **changes}
        updated = tasks[index]
    return updated


# Deleting an id the caller does not own (or that does not exist) is a no-op
@app.delete("/tasks/{task_id}", response_model=Message)
def delete_task(task_id: str, current_user: CurrentUser, store: Store):
    with store.transaction(TASKS) as tasks:
        tasks[:] = [t for t in tasks if not (str(t["id"]) == task_id and t["email"] == current_user)]
    return {"message": "Task deleted"}


@app.delete("/tasks", response_model=Message)
def delete_all_tasks(current_user: CurrentUser, store: Store):
    with store.transaction(TASKS) as tasks:
        tasks[:] = [t for t in tasks if t["email"] != current_user]
    task_logger.info(f"All tasks deleted for {current_user}")
    return {"message": "All your tasks have been deleted."}


# Removes the user, then their tasks. The two collections are written separately.
@app.delete("/delete-account", response_model=Message)
def delete_account(current_user: CurrentUser, store: Store):
    with store.transaction(USERS) as users:
        users[:] = [u for u in users if u["email"] != current_user]
    with store.transaction(TASKS) as tasks:
        tasks[:] = [t for t in tasks if t["email"] != current_user]
    auth_logger.info(f"Account deleted: {current_user}")
    return {"message": "Account and all associated tasks deleted."}


# --- Debug Endpoints ---
# Unauthenticated dumps of whole collections, only served when DEBUG_ENDPOINTS is set.
def require_debug(settings: Annotated[Settings, Depends(get_settings)]):
    if not settings.debug_endpoints:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


@app.get("/debug/tasks", response_model=List[Task], dependencies=[Depends(require_debug)])
def debug_tasks(store: Store):
    return store.load(TASKS)


@app.get("/debug/users", response_model=List[UserPublic], dependencies=[Depends(require_debug)])
def debug_users(store: Store):
    return store.load(USERS)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
