"""Profile and catalog models.

These models represent the profile registry (one record per identity) and the
catalog store (restaurants owned by sellers, dishes owned by restaurants).
Each row model converts to and from its DynamoDB item representation.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    """Enumeration of profile roles."""

    CUSTOMER = "customer"
    SELLER = "seller"


class Profile(BaseModel):
    """Profile registry record.

    The id is the identity issued by the external identity provider.
    Stored in DynamoDB with id as partition key and a unique email index.
    """

    id: str = Field(..., description="Identity identifier")
    email: str = Field(..., description="Unique email address", min_length=3)
    full_name: str = Field(..., description="Display name", min_length=1)
    role: UserRole = Field(..., description="Customer or seller, fixed at creation")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Lower-case emails so uniqueness is case-insensitive."""
        return v.strip().lower()

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Profile":
        """Create Profile from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Profile: Parsed model instance
        """
        return cls(
            id=item["id"],
            email=item["email"],
            full_name=item["full_name"],
            role=UserRole(item["role"]),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class Restaurant(BaseModel):
    """Restaurant owned by a seller."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique restaurant identifier")
    seller_id: str = Field(..., description="Profile id of the owning seller")
    name: str = Field(..., description="Restaurant name", min_length=1)
    description: str = Field(default="", description="Restaurant description")
    address: str = Field(default="", description="Street address")
    phone: str = Field(default="", description="Contact phone number")
    image_url: str = Field(default="", description="URL to restaurant image")
    is_active: bool = Field(default=True, description="Whether customers can see the restaurant")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Restaurant":
        """Create Restaurant from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Restaurant: Parsed model instance
        """
        return cls(
            id=item["id"],
            seller_id=item["seller_id"],
            name=item["name"],
            description=item.get("description", ""),
            address=item.get("address", ""),
            phone=item.get("phone", ""),
            image_url=item.get("image_url", ""),
            is_active=item.get("is_active", True),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class Dish(BaseModel):
    """Dish on a restaurant's menu."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique dish identifier")
    restaurant_id: str = Field(..., description="Restaurant this dish belongs to")
    name: str = Field(..., description="Dish name", min_length=1)
    description: str = Field(default="", description="Dish description")
    price: Decimal = Field(
        ..., description="Dish price", ge=0, max_digits=12, decimal_places=2
    )
    image_url: str = Field(default="", description="URL to dish image")
    category: str = Field(default="Other", description="Menu category")
    is_available: bool = Field(default=True, description="Whether the dish can be ordered")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "image_url": self.image_url,
            "category": self.category,
            "is_available": self.is_available,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Dish":
        """Create Dish from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Dish: Parsed model instance
        """
        return cls(
            id=item["id"],
            restaurant_id=item["restaurant_id"],
            name=item["name"],
            description=item.get("description", ""),
            price=Decimal(str(item["price"])),
            image_url=item.get("image_url", ""),
            category=item.get("category", "Other"),
            is_available=item.get("is_available", True),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class ProfileCreate(BaseModel):
    """Request body for creating the caller's own profile."""

    full_name: str = Field(..., min_length=1)
    role: UserRole


class ProfileUpdate(BaseModel):
    """Request body for updating the caller's own profile.

    Role and id are not updatable.
    """

    model_config = ConfigDict(extra="forbid")

    email: str | None = Field(None, min_length=3)
    full_name: str | None = Field(None, min_length=1)


class RestaurantCreate(BaseModel):
    """Request body for creating a restaurant."""

    name: str = Field(..., min_length=1)
    description: str = ""
    address: str = ""
    phone: str = ""
    image_url: str = ""
    is_active: bool = True


class RestaurantUpdate(BaseModel):
    """Request body for a partial restaurant update."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    description: str | None = None
    address: str | None = None
    phone: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


class DishCreate(BaseModel):
    """Request body for adding a dish to a restaurant."""

    name: str = Field(..., min_length=1)
    description: str = ""
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    image_url: str = ""
    category: str = "Other"
    is_available: bool = True


class DishUpdate(BaseModel):
    """Request body for a partial dish update."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    image_url: str | None = None
    category: str | None = None
    is_available: bool | None = None
