"""Unit tests for entity declaration and schema description."""

from typing import Optional

import pytest

from rowmodel import Model, SaveState, column, describe
from rowmodel.security import QueryInjectionError

from tests.entities import Category, Customer, Department, Employee, Order, Product


class TestDescribe:
    """Schema descriptors list persistent attributes in declaration order"""

    def test_plain_attributes(self):
        schema = describe(Customer)

        assert schema.table_name == "customers"
        assert schema.names == ("name", "email")
        assert [a.column for a in schema.attributes] == ["name", "email"]
        assert schema.relations == ()

    def test_relation_with_renamed_column(self):
        schema = describe(Order)

        customer = schema.attribute("customer")
        assert customer.is_relation
        assert customer.related_type is Customer
        assert customer.column == "customer_id"
        assert schema.relations == (customer,)

    def test_forward_and_self_references(self):
        assert describe(Category).attribute("parent").related_type is Category
        assert describe(Employee).attribute("department").related_type is Department
        assert describe(Department).attribute("manager").related_type is Employee

    def test_instance_and_type_share_descriptor(self):
        assert describe(Product(sku="x")) is describe(Product)

    def test_unknown_attribute(self):
        with pytest.raises(KeyError):
            describe(Customer).attribute("nickname")

    def test_not_a_model(self):
        with pytest.raises(TypeError):
            describe(dict)

    def test_abstract_model_cannot_be_described(self):
        with pytest.raises(TypeError):
            describe(Model)

    def test_inherited_fields_come_first(self):
        class Stamped(Model):
            __abstract__ = True
            created: str = ""

        class Note(Stamped):
            __tablename__ = "notes"
            body: str = ""

        assert describe(Note).names == ("created", "body")

    def test_invalid_column_name_rejected(self):
        class Shady(Model):
            __tablename__ = "shady"
            value: int = column("value; DROP TABLE shady", default=0)

        with pytest.raises(QueryInjectionError):
            describe(Shady)


class TestModelDeclaration:
    """Entity classes are checked when they are defined"""

    def test_missing_table_name(self):
        with pytest.raises(TypeError):
            class Nameless(Model):
                value: int = 0

    def test_invalid_table_name(self):
        with pytest.raises(QueryInjectionError):
            class Bad(Model):
                __tablename__ = "bad table"

    def test_declared_id_rejected(self):
        with pytest.raises(TypeError):
            class WithId(Model):
                __tablename__ = "with_id"
                id: int = 0

    def test_optional_non_entity_is_not_relation(self):
        class Tagged(Model):
            __tablename__ = "tagged"
            tag: Optional[str] = None

        assert not describe(Tagged).attribute("tag").is_relation


class TestModelState:
    """Save state follows the id and deletion flag"""

    def test_new_entity_is_unsaved(self):
        customer = Customer(name="Ann")
        assert customer.id == 0
        assert customer.state == SaveState.UNSAVED
        assert not customer.is_saved()
        assert not customer.is_gone()

    def test_saved_and_gone(self):
        customer = Customer()
        customer._set_id(4)
        assert customer.state == SaveState.SAVED

        customer._mark_gone()
        assert customer.state == SaveState.GONE
        assert not customer.is_saved()

    def test_assignment_is_validated(self):
        from pydantic import ValidationError

        product = Product(sku="A")
        with pytest.raises(ValidationError):
            product.price = "not a number"
        assert not product.is_modified()

    def test_repr_of_reference_cycle(self):
        employee = Employee(name="Eve")
        department = Department(title="R&D", manager=employee)
        employee.department = department
        department._set_id(3)

        assert repr(employee) == "Employee(name='Eve', department=Department(id=3))"
        assert "manager=Employee(id=0)" in repr(department)

    def test_lazy_keys_are_read_only(self):
        order = Order()
        with pytest.raises(TypeError):
            order.lazy_keys['customerId'] = 1
