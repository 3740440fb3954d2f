"""Tests for the reflector."""

from typing import Annotated, Optional

import pytest

from autoschema import BaseModel, Column, Model
from autoschema.exceptions import MetadataError
from autoschema.schema.attributes import BelongsTo, HasMany, Table
from autoschema.schema.reflector import reflector, unwrap_annotation

from sample_models import Animal, Customer, Dog, Draft, Order, Pickup, Truck, Vehicle


class TestDescribeTable:
    def test_declared_table(self):
        assert reflector.describe_table(Customer) == Table(table="customers")
        assert reflector.describe_table(Dog) == Table(table="dogs", parent="Animal")

    def test_undeclared_table_uses_convention(self):
        assert reflector.declared_table(Draft) is None
        assert reflector.describe_table(Draft).table == "drafts"

    def test_table_is_not_inherited(self):
        assert reflector.declared_table(BaseModel) is None


class TestTypeStructure:
    def test_parent_type(self):
        assert reflector.find_parent_type(Dog) is Animal
        assert reflector.find_parent_type(Animal) is None

    def test_child_types_are_concrete_subclasses(self):
        children = reflector.find_child_types(Vehicle)
        assert Truck in children
        assert Pickup in children
        assert reflector.find_child_types(Customer) == []

    def test_base_type_is_first_ancestor_below_root(self):
        assert reflector.find_base_type(Pickup) is BaseModel
        assert reflector.find_base_type(Customer) is BaseModel
        assert reflector.find_base_type(BaseModel) is None


class TestDescribeColumns:
    def test_base_columns_come_first(self):
        names = [d.property for d in reflector.describe_columns(Customer)]
        assert names == ["id", "created_at", "updated_at", "deleted_at", "name", "email"]

    def test_declaration_records_owner(self):
        owners = {d.property: d.owner for d in reflector.describe_columns(Dog)}
        assert owners["id"] is BaseModel
        assert owners["name"] is Animal
        assert owners["breed"] is Dog

    def test_own_columns(self):
        assert reflector.own_columns(Dog) == ["breed", "good"]
        assert reflector.own_columns(Order) == ["reference", "status", "total", "customer_id"]

    def test_relationships(self):
        relations = {d.property: d for d in reflector.describe_relationships(Customer)}
        assert isinstance(relations["orders"].relation, HasMany)
        belongs = reflector.describe_relationships(Order)[0]
        assert isinstance(belongs.relation, BelongsTo)
        assert belongs.annotation is Customer

    def test_belongs_to_is_named_by_its_property(self):
        with pytest.raises(TypeError):
            BelongsTo(relation="buyer")
        belongs = reflector.describe_relationships(Order)[0]
        assert belongs.property == "customer"

    def test_validation_rules(self):
        rules = reflector.describe_validation(Customer)
        assert rules == {"name": {"required": None, "max:100": "Name is too long"}}

    def test_appends_map_snake_name_to_method(self):
        assert reflector.describe_appends(Customer) == {"display_name": "displayName"}

    def test_type_without_metadata_yields_nothing(self):
        class Plain:
            value: int

        assert reflector.describe_columns(Plain) == []
        assert reflector.describe_relationships(Plain) == []
        assert reflector.describe_validation(Plain) == {}

    def test_unresolvable_annotation_raises(self, temporary_models):
        class Broken(Model, table="broken"):
            ghost: Annotated["NoSuchModel", Column()]

        with pytest.raises(MetadataError):
            reflector.describe_columns(Broken)


def test_unwrap_annotation():
    hint = Annotated[Optional[int], Column()]
    annotation, extras = unwrap_annotation(hint)
    assert annotation is int
    assert extras == (Column(),)
