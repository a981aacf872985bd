"""Entity types shared by the test suite."""

from enum import Enum
from typing import Optional

from rowmodel import Model, column


class Customer(Model):
    __tablename__ = "customers"

    name: str = ""
    email: Optional[str] = None


class Order(Model):
    __tablename__ = "orders"

    total: float = 0.0
    customer: Optional[Customer] = column("customer_id", default=None)


class Category(Model):
    __tablename__ = "categories"

    name: str = ""
    parent: Optional["Category"] = None


class Employee(Model):
    __tablename__ = "employees"

    name: str = ""
    department: Optional["Department"] = None


class Department(Model):
    __tablename__ = "departments"

    title: str = ""
    manager: Optional[Employee] = None


Employee.model_rebuild()


class ProductStatus(str, Enum):
    NEW = "new"
    LISTED = "listed"
    RETIRED = "retired"


class Product(Model):
    __tablename__ = "products"

    sku: str
    price: float = 0.0
    active: bool = True
    status: ProductStatus = ProductStatus.NEW


SCHEMA_DDL = [
    "CREATE TABLE customers (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, email TEXT)",
    "CREATE TABLE orders (id INTEGER PRIMARY KEY AUTOINCREMENT, total REAL, customer_id INTEGER)",
    "CREATE TABLE categories (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, parent INTEGER)",
    "CREATE TABLE employees (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, department INTEGER)",
    "CREATE TABLE departments (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, manager INTEGER)",
    "CREATE TABLE products (id INTEGER PRIMARY KEY AUTOINCREMENT, sku TEXT, price REAL, "
    "active INTEGER, status TEXT)",
]


def same_row(left: Model, right: Model) -> bool:
    """Compare persistent attributes, recursing into resolved relations."""
    from rowmodel import describe

    if type(left) is not type(right) or left.id != right.id:
        return False
    for attribute in describe(left).attributes:
        a, b = attribute.read(left), attribute.read(right)
        if attribute.is_relation and a is not None and b is not None:
            if not same_row(a, b):
                return False
        elif a != b:
            return False
    return True
