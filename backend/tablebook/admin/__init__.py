from tablebook.admin.restaurants import (
    CreateRestaurantArgs,
    CreateStaffAssignmentArgs,
    UpdateRestaurantArgs,
    assign_staff,
    create_restaurant,
    delete_restaurant,
    list_restaurants,
    serialize_assignment,
    serialize_restaurant,
    update_restaurant,
)

__all__ = [
    "CreateRestaurantArgs",
    "CreateStaffAssignmentArgs",
    "UpdateRestaurantArgs",
    "assign_staff",
    "create_restaurant",
    "delete_restaurant",
    "list_restaurants",
    "serialize_assignment",
    "serialize_restaurant",
    "update_restaurant",
]
