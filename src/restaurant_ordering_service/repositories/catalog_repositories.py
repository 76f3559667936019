"""DynamoDB repositories for the profile registry and the catalog store.

These repositories provide CRUD operations for profiles, restaurants and
dishes. They apply no authorization; the services check row policies before
and after calling them.
"""

import logging
from typing import Any

from botocore.exceptions import ClientError

from restaurant_ordering_service.models.catalog_models import Dish, Profile, Restaurant
from restaurant_ordering_service.repositories.base_repository import DynamoDBRepository

logger = logging.getLogger(__name__)


class ProfileRepository(DynamoDBRepository):
    """Repository for profile records, keyed by identity id with an email index."""

    def get_profile(self, profile_id: str) -> Profile | None:
        """Retrieve a profile by identity id.

        Args:
            profile_id: Identity identifier

        Returns:
            Profile if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": profile_id})

            if "Item" not in response:
                return None

            return Profile.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get profile: {e}")  # pragma: no cover
            return None

    def find_by_email(self, email: str) -> Profile | None:
        """Retrieve the profile registered with an email address.

        Args:
            email: Email address (compared lower-case)

        Returns:
            Profile if found, None otherwise
        """
        try:
            items = self._query_index("email-index", "email", email.strip().lower())
            return Profile.from_dynamodb_item(items[0]) if items else None

        except ClientError as e:
            logger.error(f"Failed to look up profile by email: {e}")  # pragma: no cover
            return None

    def create_profile(self, profile: Profile) -> bool:
        """Insert a new profile together with its email guard row.

        Both rows are written in one transaction, each only if absent, so
        neither a second profile for the same identity nor a second profile
        with the same email can slip in between a check and the write.

        Args:
            profile: Profile to insert

        Returns:
            bool: True if the profile was created, False on store errors

        Raises:
            ConditionalWriteError: With failed action 0 if the profile exists,
                1 if the email is taken
        """
        return self._transact(
            [
                self._put_new(self.table_name, profile.to_dynamodb_item()),
                self._put_new(self.table_name, self._email_guard(profile)),
            ],
            f"create profile {profile.id}",
        )

    def update_profile(self, profile: Profile, previous: Profile) -> bool:
        """Update an existing profile, moving its email guard when the email changes.

        Args:
            profile: Profile with its new state
            previous: Profile as it was read before the change

        Returns:
            bool: True if the update succeeded, False on store errors

        Raises:
            ConditionalWriteError: With failed action 0 if the profile is gone,
                1 if the new email is taken
        """
        put_existing = {
            "Put": {
                "TableName": self.table_name,
                "Item": self._serialize(profile.to_dynamodb_item()),
                "ConditionExpression": "attribute_exists(id)",
            }
        }
        actions: list[dict[str, Any]] = [put_existing]
        if profile.email != previous.email:
            actions.append(self._put_new(self.table_name, self._email_guard(profile)))
            actions.append(
                {
                    "Delete": {
                        "TableName": self.table_name,
                        "Key": self._serialize({"id": self._email_guard(previous)["id"]}),
                    }
                }
            )
        return self._transact(actions, f"update profile {profile.id}")

    @staticmethod
    def _email_guard(profile: Profile) -> dict[str, Any]:
        # No email attribute, so guard rows stay out of email-index
        return {"id": f"email#{profile.email}", "profile_id": profile.id}


class RestaurantRepository(DynamoDBRepository):
    """Repository for restaurants, with a seller_id index."""

    def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        """Retrieve a restaurant by id.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            Restaurant if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": restaurant_id})

            if "Item" not in response:
                return None

            return Restaurant.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get restaurant: {e}")  # pragma: no cover
            return None

    def save_restaurant(self, restaurant: Restaurant) -> bool:
        """Save or update a restaurant.

        Args:
            restaurant: Restaurant to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=restaurant.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save restaurant: {e}")  # pragma: no cover
            return False

    def delete_restaurant(self, restaurant_id: str) -> bool:
        """Delete a restaurant.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"id": restaurant_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete restaurant: {e}")  # pragma: no cover
            return False

    def list_for_seller(self, seller_id: str) -> list[Restaurant]:
        """List all restaurants owned by a seller.

        Uses a Global Secondary Index on seller_id.

        Args:
            seller_id: Profile id of the seller

        Returns:
            list: Restaurants (empty list if none found)
        """
        try:
            items = self._query_index("seller_id-index", "seller_id", seller_id)
            return [Restaurant.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list restaurants for seller: {e}")  # pragma: no cover
            return []

    def list_active(self) -> list[Restaurant]:
        """List every active restaurant.

        Returns:
            list: Active restaurants (empty list if none found)
        """
        try:
            items = self._scan_where("is_active", True)
            return [Restaurant.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list active restaurants: {e}")  # pragma: no cover
            return []


class DishRepository(DynamoDBRepository):
    """Repository for dishes, with a restaurant_id index."""

    def get_dish(self, dish_id: str) -> Dish | None:
        """Retrieve a dish by id.

        Args:
            dish_id: Dish identifier

        Returns:
            Dish if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": dish_id})

            if "Item" not in response:
                return None

            return Dish.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get dish: {e}")  # pragma: no cover
            return None

    def save_dish(self, dish: Dish) -> bool:
        """Save or update a dish.

        Args:
            dish: Dish to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=dish.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save dish: {e}")  # pragma: no cover
            return False

    def delete_dish(self, dish_id: str) -> bool:
        """Delete a dish.

        Args:
            dish_id: Dish identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"id": dish_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete dish: {e}")  # pragma: no cover
            return False

    def list_for_restaurant(self, restaurant_id: str) -> list[Dish]:
        """List all dishes of a restaurant.

        Uses a Global Secondary Index on restaurant_id.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            list: Dishes (empty list if none found)
        """
        try:
            items = self._query_index("restaurant_id-index", "restaurant_id", restaurant_id)
            return [Dish.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list dishes: {e}")  # pragma: no cover
            return []
