import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from suite_errors import DataLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    username: str
    password: str
    description: str = ""
    expected_result: str = ""
    expected_message: str | None = None


@dataclass(frozen=True)
class ProductRecord:
    id: str
    name: str
    description: str = ""
    price: str = ""
    category: str = ""
    in_stock: bool = True


@dataclass(frozen=True)
class SortOption:
    value: str
    name: str
    expected_first: str


@dataclass(frozen=True)
class ScenarioRecord:
    scenario: str
    description: str = ""
    products: list[str] = field(default_factory=list)
    expected_cart_count: int | None = None
    add_products: list[str] = field(default_factory=list)
    remove_products: list[str] = field(default_factory=list)
    sort_options: list[SortOption] = field(default_factory=list)


def _require(record: dict, key: str, path: Path, kind: str):
    if not isinstance(record, dict):
        raise DataLoadError(path, f"{kind} entry must be an object, got {type(record).__name__}")
    if key not in record:
        raise DataLoadError(path, f"{kind} entry is missing required key '{key}'")
    return record[key]


def _list_of(data: dict, key: str, path: Path) -> list:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise DataLoadError(path, f"'{key}' must be a list")
    return value


def parse_user(record: dict, path: Path) -> UserRecord:
    return UserRecord(
        username=_require(record, "username", path, "user"),
        password=_require(record, "password", path, "user"),
        description=record.get("description", ""),
        expected_result=record.get("expectedResult", ""),
        expected_message=record.get("expectedMessage"),
    )


def parse_product(record: dict, path: Path) -> ProductRecord:
    return ProductRecord(
        id=_require(record, "id", path, "product"),
        name=_require(record, "name", path, "product"),
        description=record.get("description", ""),
        price=str(record.get("price", "")),
        category=record.get("category", ""),
        in_stock=bool(record.get("inStock", True)),
    )


def parse_scenario(record: dict, path: Path) -> ScenarioRecord:
    name = _require(record, "scenario", path, "scenario")
    sort_options = [
        SortOption(
            value=_require(opt, "value", path, "sort option"),
            name=opt.get("name", ""),
            expected_first=_require(opt, "expectedFirst", path, "sort option"),
        )
        for opt in (record.get("sortOptions") or [])
    ]
    return ScenarioRecord(
        scenario=name,
        description=record.get("description", ""),
        products=list(record.get("products") or []),
        expected_cart_count=record.get("expectedCartCount"),
        add_products=list(record.get("addProducts") or []),
        remove_products=list(record.get("removeProducts") or []),
        sort_options=sort_options,
    )


class FixtureStore:
    """JSON-backed user and product fixtures, read from a single directory."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)

    def load(self, name: str) -> dict:
        path = self.data_dir / f"{name}.json"
        if not path.exists():
            raise DataLoadError(path, "file not found")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise DataLoadError(path, f"invalid JSON ({e})") from e
        if not isinstance(data, dict):
            raise DataLoadError(path, "top-level value must be an object")
        logger.debug("Loaded fixture file %s", path)
        return data

    def _users(self, key: str) -> list[UserRecord]:
        path = self.data_dir / "users.json"
        data = self.load("users")
        return [parse_user(r, path) for r in _list_of(data, key, path)]

    def get_valid_users(self) -> list[UserRecord]:
        return self._users("validUsers")

    def get_invalid_users(self) -> list[UserRecord]:
        return self._users("invalidUsers")

    def get_products(self) -> list[ProductRecord]:
        path = self.data_dir / "products.json"
        return [parse_product(r, path) for r in _list_of(self.load("products"), "products", path)]

    def get_scenarios(self) -> list[ScenarioRecord]:
        path = self.data_dir / "products.json"
        return [parse_scenario(r, path) for r in _list_of(self.load("products"), "testScenarios", path)]

    def find_user(self, username: str) -> UserRecord | None:
        for user in self.get_valid_users() + self.get_invalid_users():
            if user.username == username:
                return user
        return None

    def find_product(self, product_id: str) -> ProductRecord | None:
        return next((p for p in self.get_products() if p.id == product_id), None)
