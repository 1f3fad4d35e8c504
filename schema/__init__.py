"""
schema - Import target schema.

Public API:
    fields.FieldDefinition / DataType / OptionSet / custom_field
    builtin.PATIENT_FIELDS / ELIGIBILITY_FIELDS / get_profile
    registry.FieldRegistry
    catalogue.load_services / eligible_services
"""

from schema.fields import (                                  # noqa: F401
    DataType,
    Fallback,
    FieldDefinition,
    Option,
    OptionSet,
    custom_field,
)
from schema.builtin import (                                 # noqa: F401
    ELIGIBILITY_FIELDS,
    PATIENT_FIELDS,
    ImportProfile,
    get_profile,
)
from schema.registry import FieldRegistry                    # noqa: F401
from schema.catalogue import (                               # noqa: F401
    PreventiveService,
    eligible_services,
    load_services,
)
