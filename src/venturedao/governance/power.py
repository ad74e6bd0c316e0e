"""
Stake-to-power conversion.

Voting power grows with the square root of stake, damping the influence of
large holders. The computation is done entirely in integers so that results
are exact for arbitrarily large stakes.
"""

from typing import Any, Dict

from ..errors.exceptions import ErrorCode, ValidationError
from .core import is_integer_amount


def integer_sqrt(x: int) -> int:
    """Floor square root by Babylonian iteration."""
    if x < 0:
        raise ValueError("Square root of negative number")
    if x == 0:
        return 0

    z = (x + 1) // 2
    y = x
    while z < y:
        y = z
        z = (x // z + z) // 2
    return y


class VotingPowerModel:
    """Square-root voting power: ``power(stake) = floor(sqrt(stake * C))``."""

    def __init__(self, coefficient: int = 100):
        if coefficient <= 0:
            raise ValueError("Voting power coefficient must be positive")
        self.coefficient = coefficient

    def power(self, stake: int) -> int:
        """Calculate voting power for a stake."""
        if not is_integer_amount(stake) or stake < 0:
            raise ValidationError(
                "Stake must be a non-negative integer",
                error_code=ErrorCode.INVALID_AMOUNT,
                field="stake",
                value=stake,
            )
        return integer_sqrt(stake * self.coefficient)

    def __call__(self, stake: int) -> int:
        return self.power(stake)

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about this power model."""
        return {
            "name": self.__class__.__name__,
            "coefficient": self.coefficient,
            "description": self.__doc__,
        }
