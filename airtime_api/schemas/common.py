"""Field types shared by several schema modules."""

from typing import Annotated

from pydantic import AfterValidator

from airtime_api.utils import validate_phone_number

# Accepts 07XX..., +254..., 254... or a bare subscriber number; always
# normalised to 254XXXXXXXXX before the route sees it.
PhoneNumber = Annotated[str, AfterValidator(validate_phone_number)]
