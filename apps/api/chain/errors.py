"""
Excepciones del lector on-chain, independientes del transporte (HTTP, WS, IPC).
"""


class ChainError(Exception):
    def __init__(self, call: str, msg: str) -> None:
        self.call = call
        self.msg = msg
        super().__init__(f"{call}: {msg}")


class ChainUnavailable(ChainError):
    """Nodo inalcanzable, timeout o error del proveedor."""


class ReadReverted(ChainError):
    """La llamada de solo lectura hizo revert o devolvió datos no decodificables."""
