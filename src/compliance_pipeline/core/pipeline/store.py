# src/compliance_pipeline/core/pipeline/store.py
"""
Contrato do store de vetores de status e implementação em memória.

A persistência real de `Product.statuses` e `Product.results` é externa;
o core a enxerga como uma interface chave-valor por `product_id`.

Invariantes exigidos de qualquer implementação:
    - `load` devolve o último estado confirmado (nunca um snapshot antigo)
      e uma cópia: mutações no retorno não afetam o store
    - `update` é um read-modify-write atômico por produto; se a função
      levantar exceção, nada é gravado

Limites explícitos:
    - A implementação em memória não persiste nada entre processos
"""

from __future__ import annotations

import copy
import threading
from typing import Callable, Dict, Iterable, List, Protocol, runtime_checkable

from .status import StepStatusVector
from .types import Product


class ProductNotFound(KeyError):
    """O store não conhece o `product_id` informado."""


@runtime_checkable
class StatusStore(Protocol):
    def load(self, product_id: str) -> Product:
        """Retorna uma cópia do produto; levanta ProductNotFound se ausente."""
        ...

    def update(self, product_id: str, fn: Callable[[Product], None]) -> Product:
        """Aplica `fn` atomicamente sobre o produto e retorna a cópia gravada."""
        ...


def _clone(product: Product) -> Product:
    return Product(
        id=product.id,
        name=product.name,
        statuses=product.statuses.copy(),
        results=copy.deepcopy(product.results),
        meta=copy.deepcopy(product.meta),
    )


class InMemoryStatusStore:
    """Store em memória, seguro para uso concorrente."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._lock = threading.RLock()
        self._products: Dict[str, Product] = {}
        for product in products:
            self.add(product)

    def add(self, product: Product) -> None:
        with self._lock:
            self._products[product.id] = _clone(product)

    def create(self, product_id: str, *, name: str = "") -> Product:
        product = Product(id=product_id, name=name, statuses=StepStatusVector())
        self.add(product)
        return _clone(product)

    def load(self, product_id: str) -> Product:
        with self._lock:
            if product_id not in self._products:
                raise ProductNotFound(product_id)
            return _clone(self._products[product_id])

    def update(self, product_id: str, fn: Callable[[Product], None]) -> Product:
        with self._lock:
            if product_id not in self._products:
                raise ProductNotFound(product_id)
            working = _clone(self._products[product_id])
            fn(working)
            self._products[product_id] = working
            return _clone(working)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._products)
