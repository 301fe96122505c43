"""
Base entity descriptor model
"""

from typing import Any, Callable, Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict

RandomDataFn = Callable[[Dict[str, Any]], Dict[str, Any]]


def _lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


class EntityDescriptor(BaseModel):
    """Everything the harness needs to drive one remote entity type"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    network_name: str                 # GraphQL type name, e.g. "SalesOrder"
    default_selector: Dict[str, Any]  # models.selector.Selector
    random_data: RandomDataFn
    id_field: str = "id"
    depends_on: Tuple[str, ...] = ()  # parent entity types (network names)
    plural_name: Optional[str] = None

    @property
    def single_field(self) -> str:
        """Root query field for one instance, e.g. salesOrder"""
        return _lower_first(self.network_name)

    @property
    def list_field(self) -> str:
        """Root query field for many instances, e.g. salesOrders"""
        return _lower_first(self.plural_name or f"{self.network_name}s")

    @property
    def create_field(self) -> str:
        return f"create{self.network_name}"

    @property
    def update_field(self) -> str:
        return f"update{self.network_name}"

    @property
    def delete_field(self) -> str:
        return f"delete{self.network_name}"

    @property
    def filter_type(self) -> str:
        return f"{self.network_name}Filter"

    @property
    def input_type(self) -> str:
        return f"{self.network_name}Input"

    def generate(self, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Fresh random input with caller overrides applied on top"""
        overrides = dict(overrides or {})
        data = dict(self.random_data(overrides))
        data.update(overrides)
        return data
