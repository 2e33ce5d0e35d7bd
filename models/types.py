from typing import Annotated

from pydantic import Field

# 0-1 scale: interaction-derived scores, confidences, rates
Score01 = Annotated[float, Field(ge=0.0, le=1.0)]

# 0-10 scale: player satisfaction and user ratings
Rating010 = Annotated[float, Field(ge=0.0, le=10.0)]
