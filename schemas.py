"""
Database Schemas for LocalChef Bazaar

MongoDB collections are defined below using Pydantic models:
- meals: chef meal listings
- reviews: customer reviews of meals
- favorites: meals saved by a customer
- orders: customer orders
- users: registered users (user, chef, admin)

Request payload models follow the document models. They forbid unknown
fields so that arbitrary keys never reach a stored document.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

OrderStatus = Literal["pending", "accepted", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid"]
Role = Literal["user", "chef", "admin"]
UserStatus = Literal["active", "fraud"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Meal(BaseModel):
    chefEmail: str = Field(..., description="Email of the owning chef")
    chefName: str = Field(..., min_length=1, max_length=120)
    chefId: str = Field(..., min_length=1)
    foodName: str = Field(..., min_length=1, max_length=120)
    foodImage: Optional[str] = None
    price: float = Field(..., ge=0)
    ingredients: List[str] = Field(default_factory=list)
    estimatedDeliveryTime: Optional[str] = None
    chefExperience: Optional[str] = None
    deliveryArea: Optional[str] = None
    rating: float = Field(0, description="Mean of all review ratings for this meal")
    createdAt: datetime = Field(default_factory=utcnow)


class Review(BaseModel):
    foodId: str = Field(..., description="Reference to meal _id")
    reviewerEmail: str
    reviewerName: Optional[str] = None
    reviewerImage: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    date: datetime = Field(default_factory=utcnow)


class Favorite(BaseModel):
    userEmail: str
    mealId: str
    mealName: Optional[str] = None
    chefId: Optional[str] = None
    price: Optional[float] = None
    addedTime: datetime = Field(default_factory=utcnow)


class Order(BaseModel):
    userEmail: str = Field(..., description="Buyer email")
    chefId: str
    mealId: str
    mealName: str
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    userAddress: Optional[str] = Field(None, max_length=400)
    orderTime: datetime = Field(default_factory=utcnow)
    orderStatus: OrderStatus = "pending"
    paymentStatus: PaymentStatus = "pending"
    paidAt: Optional[datetime] = None


class User(BaseModel):
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: Role = "user"
    status: UserStatus = "active"
    createdAt: datetime = Field(default_factory=utcnow)


# Request payloads

class Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class MealCreate(Payload):
    chefName: str = Field(..., min_length=1, max_length=120)
    chefId: str = Field(..., min_length=1)
    foodName: str = Field(..., min_length=1, max_length=120)
    foodImage: Optional[str] = None
    price: float = Field(..., ge=0)
    ingredients: List[str] = Field(default_factory=list)
    estimatedDeliveryTime: Optional[str] = None
    chefExperience: Optional[str] = None
    deliveryArea: Optional[str] = None


class MealUpdate(Payload):
    chefName: Optional[str] = Field(None, min_length=1, max_length=120)
    foodName: Optional[str] = Field(None, min_length=1, max_length=120)
    foodImage: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    ingredients: Optional[List[str]] = None
    estimatedDeliveryTime: Optional[str] = None
    chefExperience: Optional[str] = None
    deliveryArea: Optional[str] = None


class ReviewCreate(Payload):
    foodId: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    reviewerName: Optional[str] = None
    reviewerImage: Optional[str] = None

    @field_validator("foodId")
    @classmethod
    def food_id_is_object_id(cls, v: str) -> str:
        if not ObjectId.is_valid(v):
            raise ValueError("foodId must be a valid meal id")
        return v


class FavoriteCreate(Payload):
    userEmail: EmailStr
    mealId: str = Field(..., min_length=1)
    mealName: Optional[str] = None
    chefId: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class OrderCreate(Payload):
    chefId: str = Field(..., min_length=1)
    mealId: str = Field(..., min_length=1)
    mealName: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    userAddress: Optional[str] = Field(None, max_length=400)


class StatusUpdate(Payload):
    status: str


class RoleUpdate(Payload):
    role: str


class RegisterRequest(Payload):
    name: Optional[str] = Field(None, max_length=120)
    image: Optional[str] = None


class CheckoutRequest(Payload):
    orderId: str
    mealImage: Optional[str] = None
