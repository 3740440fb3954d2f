"""Tests for model persistence and serialization."""

from datetime import datetime

import pytest

from sample_models import Customer, Invoice, Order


@pytest.fixture
def customer(schema):
    return Customer.create(name="Ada", email="ada@example.com")


class TestCreate:
    """Creating and filling instances."""

    def test_create_applies_defaults_and_saves(self, customer):
        order = Order.create(reference="A-1", customer=customer)

        assert order.exists
        assert order.id is not None
        assert order.status == "pending"
        assert order.total == 0
        assert order.customer_id == customer.id
        assert isinstance(order.created_at, datetime)

    def test_model_class_key_sets_foreign_key(self, customer):
        order = Order.create({Customer: customer.id, "reference": "A-2"})
        assert order.get_raw("customer_id") == customer.id

    def test_non_fillable_keys_are_ignored(self):
        order = Order({"reference": "A-3", "nonsense": 1})
        assert order.attributes == {"reference": "A-3"}

    def test_force_fill_sets_any_key(self):
        order = Order().force_fill({"nonsense": 1})
        assert order.get_raw("nonsense") == 1

    def test_cast_on_create(self, schema):
        invoice = Invoice.create(amount=9.99)
        assert invoice.get_raw("amount") == 999
        assert Invoice.find(invoice.id).amount == 9.99


class TestDirtyTracking:
    def test_loaded_instance_is_clean(self, customer):
        loaded = Customer.find(customer.id)
        assert not loaded.is_dirty()

    def test_changes_are_tracked_and_saved(self, customer):
        loaded = Customer.find(customer.id)
        loaded.name = "Ada L."
        assert loaded.is_dirty("name")
        assert not loaded.is_dirty("email")
        assert loaded.get_dirty() == {"name": "Ada L."}

        loaded.save()

        assert not loaded.is_dirty()
        assert Customer.find(customer.id).name == "Ada L."

    def test_update_touches_updated_at(self, customer):
        loaded = Customer.find(customer.id)
        before = loaded.get_raw("updated_at")
        loaded.email = "lovelace@example.com"
        loaded.save()
        assert loaded.get_raw("updated_at") is not None
        assert loaded.get_raw("updated_at") != before

    def test_saving_clean_instance_is_a_no_op(self, customer):
        assert customer.save() is True


class TestSerialization:
    def test_hidden_columns_are_left_out(self, customer):
        data = Customer.find(customer.id).to_dict()
        assert "id" not in data
        assert "deleted_at" not in data
        assert data["name"] == "Ada"
        assert data["email"] == "ada@example.com"

    def test_appended_attributes(self, customer):
        assert customer.to_dict()["display_name"] == "Ada <ada@example.com>"

    def test_datetimes_are_iso_strings(self, customer):
        created = customer.to_dict()["created_at"]
        assert isinstance(created, str)
        datetime.fromisoformat(created)

    def test_loaded_relations_are_included(self, customer):
        Order.create(reference="A-1", customer=customer)
        data = Order.where(reference="A-1").first().to_dict()
        assert "customer_id" not in data
        assert data["customer"]["name"] == "Ada"


class TestQuery:
    def test_where_order_and_count(self, customer):
        for reference in ("B", "A", "C"):
            Order.create(reference=reference, customer=customer)
        Order.where(reference="C").first().force_fill({"status": "paid"}).save()

        assert Order.query().count() == 3
        assert Order.where(status="paid").count() == 1
        assert Order.where("status", "pending").exists()
        assert [o.reference for o in Order.query().order_by("reference").get()] == ["A", "B", "C"]
        assert [o.reference for o in Order.query().order_by("reference").limit(2).get()] == ["A", "B"]

    def test_find_missing(self, schema):
        assert Customer.find(12345) is None

    def test_all(self, customer):
        Customer.create(name="Grace")
        assert {c.name for c in Customer.all()} == {"Ada", "Grace"}


class TestDelete:
    def test_soft_delete_and_restore(self, customer):
        assert customer.delete()

        assert customer.trashed()
        assert Customer.find(customer.id) is None
        trashed = Customer.query().with_trashed().find(customer.id)
        assert trashed.trashed()

        assert trashed.restore()
        assert Customer.find(customer.id) is not None

    def test_force_delete(self, customer):
        assert customer.force_delete()
        assert not customer.exists
        assert Customer.query().with_trashed().find(customer.id) is None

    def test_hard_delete_without_deleted_at(self, schema):
        invoice = Invoice.create(amount=1)
        assert invoice.delete()
        assert Invoice.find(invoice.id) is None
        assert not invoice.trashed()

    def test_unsaved_instance_cannot_be_deleted(self):
        assert Customer(name="Nobody").delete() is False


def test_column_definitions_and_rules():
    assert list(Invoice.column_definitions()) == ["id", "amount", "created_at", "updated_at"]
    assert Customer.validation_rules()["name"] == {"required": None, "max:100": "Name is too long"}
    assert Customer.table_name() == "customers"


def test_repr(customer):
    assert repr(customer) == f"<Customer id={customer.id}>"
