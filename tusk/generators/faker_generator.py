"""Faker-backed generator library."""

from typing import Optional

from faker import Faker

from tusk.generators.registry import GeneratorRegistry


def build_default_registry(fake: Optional[Faker] = None) -> GeneratorRegistry:
    """
    Build the registry of built-in generators.

    Names follow the ``category.camelCase`` paths already used in generator
    definition files (``person.fullName``, ``internet.email``...), each
    backed by the equivalent Faker provider.

    Args:
        fake: Faker instance to draw from (seed it for reproducible output)
    """
    fake = fake or Faker()
    registry = GeneratorRegistry()

    library = {
        "person": {
            "fullName": lambda: fake.name(),
            "firstName": lambda: fake.first_name(),
            "lastName": lambda: fake.last_name(),
            "jobTitle": lambda: fake.job(),
            "prefix": lambda: fake.prefix(),
            "sex": lambda: fake.random_element(("female", "male")),
        },
        "internet": {
            "email": lambda: fake.email(),
            "userName": lambda: fake.user_name(),
            "url": lambda: fake.url(),
            "domainName": lambda: fake.domain_name(),
            "ipv4": lambda: fake.ipv4(),
            "password": lambda: fake.password(),
        },
        "number": {
            "int": lambda: fake.random_int(min=0, max=2_147_483_647),
            "float": lambda: fake.pyfloat(min_value=0, max_value=10000, right_digits=2),
        },
        "date": {
            "past": lambda: fake.date_time_between(start_date="-1y", end_date="now"),
            "future": lambda: fake.date_time_between(start_date="now", end_date="+1y"),
            "recent": lambda: fake.date_time_between(start_date="-1d", end_date="now"),
            "birthdate": lambda: fake.date_of_birth(minimum_age=18, maximum_age=80),
            "anytime": lambda: fake.date_time(),
        },
        "location": {
            "streetAddress": lambda: fake.street_address(),
            "city": lambda: fake.city(),
            "state": lambda: fake.state(),
            "country": lambda: fake.country(),
            "zipCode": lambda: fake.zipcode(),
            "latitude": lambda: float(fake.latitude()),
            "longitude": lambda: float(fake.longitude()),
        },
        "company": {
            "name": lambda: fake.company(),
            "catchPhrase": lambda: fake.catch_phrase(),
        },
        "commerce": {
            "productName": lambda: fake.catch_phrase(),
            "price": lambda: fake.pydecimal(left_digits=4, right_digits=2, positive=True),
            "department": lambda: fake.word().capitalize(),
        },
        "lorem": {
            "word": lambda: fake.word(),
            "sentence": lambda: fake.sentence(),
            "paragraph": lambda: fake.paragraph(),
        },
        "phone": {
            "number": lambda: fake.phone_number(),
        },
        "string": {
            "uuid": lambda: str(fake.uuid4()),
        },
        "datatype": {
            "boolean": lambda: fake.boolean(),
        },
        "finance": {
            "amount": lambda: fake.pydecimal(left_digits=5, right_digits=2, positive=True),
        },
    }

    for category, generators in library.items():
        for name, generator in generators.items():
            registry.register(category, name, generator)

    return registry
