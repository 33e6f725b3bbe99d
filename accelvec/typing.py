from __future__ import annotations

from typing import TypeAlias

import numpy as np
import numpy.typing as npt

# Vector storage: complex vectors keep interleaved re/im pairs in float32
NDArrayFloat: TypeAlias = npt.NDArray[np.float32]
# Raw camera samples accepted by set_from_16bit_pixels
NDArrayUInt16: TypeAlias = npt.NDArray[np.uint16]
