import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

import access
from catalog import FavoriteService, MealService
from database import Database
from errors import AppError, InternalFailure, Unauthorized
from identity import build_verifier
from logging_config import setup_logging
from orders import OrderService
from payments import StripePaymentGateway
from ratings import RatingAggregator
from schemas import (
    CheckoutRequest,
    FavoriteCreate,
    MealCreate,
    MealUpdate,
    OrderCreate,
    RegisterRequest,
    ReviewCreate,
    RoleUpdate,
    StatusUpdate,
)
from settings import Settings, get_settings
from users import UserService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_app(settings: Settings = None, database: Database = None, verifier=None, payments=None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db.connect()
        if app.state.verifier is None:
            app.state.verifier = build_verifier(settings)
        if app.state.payments is None and settings.STRIPE_SECRET_KEY:
            app.state.payments = StripePaymentGateway(settings.STRIPE_SECRET_KEY, settings.CURRENCY)
        logger.info("%s started (%s)", settings.APP_NAME, settings.ENVIRONMENT)
        yield
        app.state.db.close()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.db = database or Database(settings.MONGODB_URI, settings.DB_NAME)
    app.state.verifier = verifier
    app.state.payments = payments

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    register_routes(app)
    return app


# Dependencies

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    verifier = request.app.state.verifier
    return await run_in_threadpool(verifier.verify, credentials.credentials)


def require_role(*roles: str):
    def role_dep(request: Request, current_user: str = Depends(get_current_user)) -> str:
        access.require_role(request.app.state.db, current_user, roles)
        return current_user
    return role_dep


def get_orders(request: Request) -> OrderService:
    return OrderService(request.app.state.db)


def get_ratings(request: Request) -> RatingAggregator:
    return RatingAggregator(request.app.state.db)


def get_meals(request: Request) -> MealService:
    return MealService(request.app.state.db)


def get_favorites(request: Request) -> FavoriteService:
    return FavoriteService(request.app.state.db)


def get_users(request: Request) -> UserService:
    return UserService(request.app.state.db)


def register_routes(app: FastAPI) -> None:

    # Orders
    @app.post("/orders")
    def place_order(payload: OrderCreate, current_user=Depends(get_current_user), orders=Depends(get_orders)):
        return orders.create_order(payload, current_user)

    @app.get("/orders")
    def my_orders(email: str = Query(""), current_user=Depends(get_current_user), orders=Depends(get_orders)):
        return orders.list_for_buyer(email, current_user)

    @app.patch("/orders/{order_id}/status")
    def update_order_status(order_id: str, payload: StatusUpdate, current_user=Depends(get_current_user), orders=Depends(get_orders)):
        return orders.set_status(order_id, payload.status, current_user)

    @app.patch("/orders/{order_id}/pay")
    def pay_order(order_id: str, current_user=Depends(get_current_user), orders=Depends(get_orders)):
        return orders.mark_paid(order_id)

    @app.delete("/orders/{order_id}")
    def delete_order(order_id: str, current_user=Depends(get_current_user), orders=Depends(get_orders)):
        orders.delete_order(order_id, current_user)
        return {"success": True, "message": "Order cancelled successfully"}

    @app.get("/chef/orders")
    def chef_orders(chefId: str = Query(""), current_user=Depends(get_current_user), orders=Depends(get_orders)):
        return orders.list_for_chef(chefId)

    # Payments
    @app.post("/create-checkout-session")
    def create_checkout_session(
        payload: CheckoutRequest,
        request: Request,
        current_user=Depends(get_current_user),
        orders=Depends(get_orders),
    ):
        gateway = request.app.state.payments
        if gateway is None:
            raise InternalFailure("Payments are not configured")
        order = orders.get_for_buyer(payload.orderId, current_user)
        client_url = request.app.state.settings.CLIENT_URL
        url = gateway.create_checkout_session(
            meal_name=order["mealName"],
            meal_image=payload.mealImage,
            unit_amount_cents=int(round(order["price"] * 100)),
            quantity=order["quantity"],
            buyer_email=current_user,
            success_url=f"{client_url}/payment-success?orderId={order['id']}",
            cancel_url=f"{client_url}/dashboard/my-orders",
        )
        return {"url": url}

    # Reviews
    @app.post("/reviews")
    def submit_review(payload: ReviewCreate, current_user=Depends(get_current_user), ratings=Depends(get_ratings)):
        review, avg_rating = ratings.submit_review(payload, current_user)
        return {"success": True, "review": review, "avgRating": avg_rating}

    @app.get("/reviews/{food_id}")
    def meal_reviews(food_id: str, ratings=Depends(get_ratings)):
        return ratings.list_reviews(food_id)

    @app.delete("/reviews/{review_id}")
    def delete_review(review_id: str, current_user=Depends(get_current_user), ratings=Depends(get_ratings)):
        avg_rating = ratings.delete_review(review_id, current_user)
        return {"success": True, "avgRating": avg_rating}

    # Meals
    @app.post("/meals")
    def create_meal(payload: MealCreate, current_user=Depends(get_current_user), meals=Depends(get_meals)):
        return meals.create_meal(payload, current_user)

    @app.get("/meals")
    def list_meals(meals=Depends(get_meals)):
        return meals.list_meals()

    @app.get("/meals/{meal_id}")
    def get_meal(meal_id: str, meals=Depends(get_meals)):
        return meals.get_meal(meal_id)

    @app.get("/my-meals/{email}")
    def my_meals(email: str, current_user=Depends(get_current_user), meals=Depends(get_meals)):
        return meals.list_for_chef(email, current_user)

    @app.patch("/meals/{meal_id}")
    def update_meal(meal_id: str, payload: MealUpdate, current_user=Depends(get_current_user), meals=Depends(get_meals)):
        return meals.update_meal(meal_id, payload, current_user)

    @app.delete("/meals/{meal_id}")
    def delete_meal(meal_id: str, current_user=Depends(get_current_user), meals=Depends(get_meals)):
        meals.delete_meal(meal_id, current_user)
        return {"success": True, "message": "Meal deleted"}

    # Favorites
    @app.post("/favorites")
    def add_favorite(payload: FavoriteCreate, current_user=Depends(get_current_user), favorites=Depends(get_favorites)):
        favorite = favorites.add_favorite(payload, current_user)
        if favorite is None:
            return {"success": False, "message": "Meal already in favorites"}
        return {"success": True, "favorite": favorite}

    @app.get("/favorites")
    def my_favorites(email: str = Query(""), current_user=Depends(get_current_user), favorites=Depends(get_favorites)):
        return favorites.list_favorites(email, current_user)

    @app.delete("/favorites/{favorite_id}")
    def remove_favorite(favorite_id: str, current_user=Depends(get_current_user), favorites=Depends(get_favorites)):
        favorites.remove_favorite(favorite_id, current_user)
        return {"success": True, "message": "Removed from favorites"}

    # Users
    @app.post("/users")
    def register(payload: RegisterRequest, current_user=Depends(get_current_user), users=Depends(get_users)):
        return users.register(current_user, payload)

    @app.get("/users/me")
    def my_role(current_user=Depends(get_current_user), users=Depends(get_users)):
        return users.get_role(current_user)

    @app.get("/users")
    def list_users(admin=Depends(require_role("admin")), users=Depends(get_users)):
        return users.list_users()

    @app.patch("/users/{email}/role")
    def set_role(email: str, payload: RoleUpdate, admin=Depends(require_role("admin")), users=Depends(get_users)):
        return users.set_role(email, payload.role)

    @app.patch("/users/{email}/fraud")
    def flag_fraud(email: str, admin=Depends(require_role("admin")), users=Depends(get_users)):
        return users.flag_fraud(email)

    # Utility endpoints
    @app.get("/")
    def root():
        return {"message": "LocalChef Bazaar API running"}


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3000)
