from abc import ABC, abstractmethod
from faker import Faker
import random


class BaseGenerator(ABC):
    LOCALE = "en_IN"

    def __init__(self, seed: int | None = 42):
        self.fake = Faker(self.LOCALE)
        if seed is not None:
            Faker.seed(seed)
            random.seed(seed)

    @abstractmethod
    def generate_one(self):
        pass

    def generate_batch(self, count: int) -> list:
        return [self.generate_one() for _ in range(count)]
