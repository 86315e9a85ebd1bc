import secrets

from ..core.ports import SuffixGenerator


class HexSuffix(SuffixGenerator):
    def __init__(self, nbytes: int = 3):  # 3 bytes -> 6 hex chars
        self.nbytes = nbytes

    def new_suffix(self) -> str:
        return secrets.token_hex(self.nbytes)
