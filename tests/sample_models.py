"""Models shared by the test suite."""

from datetime import datetime
from typing import Annotated, List, Optional

import sqlalchemy as sa

from autoschema import (
    BaseModel,
    BelongsTo,
    Column,
    HasMany,
    HasOne,
    HasOneThrough,
    Model,
    ValidationRule,
    appended,
)
from autoschema.schema.fields import build_table


# Plain models and relationships


class Customer(BaseModel, table="customers"):
    name: Annotated[str, Column(), ValidationRule("required"), ValidationRule("max:100", "Name is too long")]
    email: Annotated[Optional[str], Column(nullable=True, length=255, index=True)]
    orders: Annotated[List["Order"], HasMany(related="Order")]
    profile: Annotated["Profile", HasOne()]

    @appended
    def displayName(self):
        return f"{self.name} <{self.email}>"


class Order(BaseModel, table="orders"):
    reference: Annotated[str, Column(length=32), ValidationRule("required")]
    status: Annotated[str, Column(default="pending")]
    total: Annotated[float, Column(type="integer", cast="currency", default=0)]
    customer: Annotated[Customer, Column(), BelongsTo(eager=True)]


class Profile(BaseModel, table="profiles"):
    bio: Annotated[Optional[str], Column(type="text", nullable=True)]
    customer: Annotated[Customer, Column(), BelongsTo()]


class Invoice(Model, table="invoices"):
    id: Annotated[int, Column(type="id")]
    amount: Annotated[float, Column(type="integer", cast="currency")]
    created_at: Annotated[Optional[datetime], Column(type="timestamp", cast="datetime", nullable=True)]
    updated_at: Annotated[Optional[datetime], Column(type="timestamp", cast="datetime", nullable=True)]


class Mechanic(BaseModel, table="mechanics"):
    name: Annotated[str, Column()]
    carOwner: Annotated["Owner", HasOneThrough(through="Car")]


class Car(BaseModel, table="cars"):
    plate: Annotated[str, Column(length=16)]
    mechanic: Annotated[Mechanic, Column(), BelongsTo()]


class Owner(BaseModel, table="owners"):
    name: Annotated[str, Column()]
    car: Annotated[Car, Column(), BelongsTo(load=("mechanic",))]


# Table inheritance, one level


class Animal(BaseModel, table="animals"):
    name: Annotated[str, Column()]
    legs: Annotated[int, Column(type="integer", default=4)]


class Dog(Animal, table="dogs", parent="Animal"):
    breed: Annotated[Optional[str], Column(nullable=True)]
    good: Annotated[bool, Column(type="boolean", cast="bool", default=True)]


class Cat(Animal, table="cats", parent="Animal", discriminator="kitty"):
    indoor: Annotated[bool, Column(type="boolean", cast="bool", default=False)]


# Table inheritance, three levels


class Vehicle(BaseModel, table="vehicles"):
    wheels: Annotated[int, Column(type="integer")]


class Truck(Vehicle, table="trucks", parent="Vehicle"):
    payload: Annotated[int, Column(type="integer", nullable=True)]


class Pickup(Truck, table="pickups", parent="Truck"):
    bed_length: Annotated[Optional[float], Column(type="float", nullable=True)]


# Not migrated: no table declaration


class Draft(BaseModel):
    title: Annotated[str, Column()]


PERSISTED = (Customer, Order, Profile, Invoice, Mechanic, Car, Owner, Animal, Dog, Cat)


def create_schema(database):
    """Create a table for every persisted sample model."""
    metadata = sa.MetaData()
    for model in PERSISTED:
        build_table(model.table_name(), model.column_definitions(), metadata)
    metadata.create_all(database.engine)
    return database
