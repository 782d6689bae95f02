#!/usr/bin/env python
#
# This script shows how to configure sweet classes and use them with SQLAlchemy
#
# run:
# python examples/world.py
#
import logging
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session
from sweet import Schema, SweetBase, log, setup_class


class Country(SweetBase):
    """
    description: Country, the table name defaults to "country"
    """

    @setup_class
    def setup():
        add_columns("id", {"data_type": "integer"}, "name", {"data_type": "varchar", "size": 64})
        set_primary_key("id")
        add_unique_constraint(["name"])
        has_many("people", "World.Person", "country_id")


class Person(SweetBase):
    """
    description: Person
    """

    @setup_class
    def setup():
        add_columns("id", {"data_type": "integer"}, "name", "country_id", {"data_type": "integer"})
        set_primary_key("id")
        belongs_to("country", "World.Country", "country_id")


def populate(session):
    for country_name, people in (("Belgium", ["Thomas", "Ann"]), ("Brazil", ["Nilson"])):
        country = Country(name=country_name)
        session.add(country)
        for name in people:
            session.add(Person(name=name, country=country))
    session.commit()


if __name__ == "__main__":
    log.setLevel(logging.DEBUG)
    engine = create_engine("sqlite://")
    schema = Schema()
    schema.register_classes(Country, Person)
    schema.create_all(engine)

    with Session(engine) as session:
        populate(session)
        for person in session.scalars(select(Person).order_by(Person.name)):
            print(person, person.name, person.country.name)
