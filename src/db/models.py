"""
Database models for the pizza sales pipeline.
"""
from sqlalchemy import Column, Integer, String, Numeric, Date, Time, Text, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PizzaType(Base):
    """Pizza recipes with their category and ingredients."""
    __tablename__ = 'pizza_types'

    pizza_type_id = Column(String(50), primary_key=True)
    name = Column(String(100))
    category = Column(String(50))
    ingredients = Column(Text)


class Pizza(Base):
    """A pizza type in one size at one price."""
    __tablename__ = 'pizzas'

    pizza_id = Column(String(50), primary_key=True)
    pizza_type_id = Column(String(50), ForeignKey('pizza_types.pizza_type_id'))
    size = Column(String(5))
    price = Column(Numeric(10, 2))


class Order(Base):
    __tablename__ = 'orders'

    order_id = Column(String(50), primary_key=True)
    date = Column(Date)
    time = Column(Time)


class OrderDetail(Base):
    """One line of an order: a pizza and how many of it."""
    __tablename__ = 'order_details'

    order_details_id = Column(String(50), primary_key=True)
    order_id = Column(String(50), ForeignKey('orders.order_id'))
    pizza_id = Column(String(50), ForeignKey('pizzas.pizza_id'))
    quantity = Column(Integer)
