import secrets
from typing import Callable, List, Sequence, TypeVar

T = TypeVar('T')


def secure_shuffle(items: Sequence[T], randbelow: Callable[[int], int] = secrets.randbelow) -> List[T]:
    """Return a uniformly random permutation of ``items`` as a new list.

    Fisher-Yates driven by a CSPRNG so clients cannot predict which subset
    of the bank was drawn or in what order.
    """
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = randbelow(i + 1)
        result[i], result[j] = result[j], result[i]
    return result
