import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

from auth import Identity, get_token_service, require_identity, require_signup_secret
from config import get_settings
from database import MongoDatabase, get_db
from errors import AppError
from fields import DISCOUNT_VALUES, PRODUCT_CATEGORIES
from logger import get_logger
from repositories import ProductRepository, UserRepository
from schemas import (
    AppConfig,
    LoginRequest,
    ProductCreateRequest,
    ProductUpdateRequest,
    ProfileUpdateRequest,
    SignupRequest,
)
from security import TokenService
from services import ProductService, UserService

logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    settings.validate()
    mongo = MongoDatabase(settings.database_url, settings.database_name)
    mongo.connect()
    app.state.mongo = mongo
    logger.info("Catalog API started")
    try:
        yield
    finally:
        mongo.close()
        logger.info("Catalog API stopped")


app = FastAPI(title="Catalog API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error mapping

def envelope(message: str, data=None, success: bool = True) -> dict:
    body = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    return body


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=envelope(exc.message, success=False))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0] if errors else {}
    where = ".".join(str(part) for part in detail.get("loc", ())[1:])
    message = f"Validation failed: {where} {detail.get('msg', 'is invalid')}".replace("  ", " ")
    return JSONResponse(status_code=400, content=envelope(message, success=False))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=envelope(AppError.default_message, success=False))


# Dependencies

def get_user_service(
    db: Database = Depends(get_db), tokens: TokenService = Depends(get_token_service)
) -> UserService:
    return UserService(UserRepository(db), tokens)


def get_product_service(db: Database = Depends(get_db)) -> ProductService:
    return ProductService(ProductRepository(db))


@app.get("/")
def read_root():
    return {"message": "Catalog API ready"}


@app.get("/healthcheck")
def healthcheck(db: Database = Depends(get_db)):
    return envelope("Backend server is running!", {"collections": db.list_collection_names()})


# Account endpoints
@app.post("/api/users/signup", status_code=201, dependencies=[Depends(require_signup_secret)])
def signup(payload: SignupRequest, users: UserService = Depends(get_user_service)):
    user = users.signup(payload.model_dump())
    return envelope("User signed up successfully!", user)


@app.post("/api/users/login")
def login(payload: LoginRequest, users: UserService = Depends(get_user_service)):
    result = users.login(payload.model_dump())
    return envelope("Login successful.", result)


@app.patch("/api/users/edit")
def edit_profile(
    payload: ProfileUpdateRequest,
    identity: Identity = Depends(require_identity),
    users: UserService = Depends(get_user_service),
):
    user = users.edit_profile(identity.user_id, payload.model_dump(exclude_unset=True))
    return envelope("Profile updated successfully.", user)


# Product endpoints
@app.post("/api/product/add", status_code=201)
def add_product(
    payload: ProductCreateRequest,
    identity: Identity = Depends(require_identity),
    products: ProductService = Depends(get_product_service),
):
    product = products.add(payload.model_dump(), identity.user_id)
    return envelope("Product added successfully!", product)


@app.get("/api/product")
def list_products(
    request: Request,
    identity: Identity = Depends(require_identity),
    products: ProductService = Depends(get_product_service),
):
    result = products.list_products(dict(request.query_params), identity.user_id)
    return envelope("Products fetched successfully!", result)


@app.get("/api/product/search")
def search_products(
    keyword: str = None,
    identity: Identity = Depends(require_identity),
    products: ProductService = Depends(get_product_service),
):
    result = products.search(keyword)
    return envelope("Products searched successfully.", result)


@app.get("/api/product/getProduct")
def get_product(
    productId: str = None,
    identity: Identity = Depends(require_identity),
    products: ProductService = Depends(get_product_service),
):
    product = products.verify_owner(productId, identity.user_id)
    return envelope("Product fetched successfully!", product)


@app.patch("/api/product")
def edit_product(
    payload: ProductUpdateRequest,
    productId: str = None,
    identity: Identity = Depends(require_identity),
    products: ProductService = Depends(get_product_service),
):
    product = products.edit(productId, payload.model_dump(exclude_unset=True), identity.user_id)
    return envelope("Product updated successfully!", product)


@app.delete("/api/product")
def delete_product(
    productId: str = None,
    identity: Identity = Depends(require_identity),
    products: ProductService = Depends(get_product_service),
):
    products.delete(productId, identity.user_id)
    return envelope("Product deleted successfully.")


# Common endpoints
@app.get("/api/common/config")
def app_config():
    config = AppConfig(productCategories=list(PRODUCT_CATEGORIES), discountValues=list(DISCOUNT_VALUES))
    return envelope("App configuration fetched successfully.", jsonable_encoder(config))


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
