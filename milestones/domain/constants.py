"""Domain constants."""

# Completeness tolerance in currency units, absorbs float rounding
ALLOCATION_EPSILON = 0.01

# Prefix for ids generated in the editor before the store assigns one
LOCAL_ID_PREFIX = "local-"

# Fields the operator may change through EditBuffer.update_item
EDITABLE_FIELDS = frozenset(
    {"label", "mode", "percent_of_total", "fixed_amount", "sort_order", "due_on"}
)

# Save steps, in execution order
SAVE_STEP_ARCHIVE = "archive"
SAVE_STEP_CREATE = "create"
SAVE_STEP_UPDATE = "update"

# sort_order is stored in an SQLite INTEGER column
SORT_ORDER_MIN = -(2**63)
SORT_ORDER_MAX = 2**63 - 1
