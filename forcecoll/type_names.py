"""
Type name normalization utilities.

This module defines the canonical contact type and QP solver type strings
and maps common aliases onto them.  Normalizing in one place avoids subtle
bugs where a configuration file says ``surface`` and the code expects
``Surface``.  Use ``normalize_contact_type`` and ``normalize_qp_solver_type``
wherever a type string is accepted from user input or configuration.
"""

from typing import Dict

# Canonical contact types.  Keys are lower-cased lookup names, values are the
# names reported by ``Contact.type``.
CONTACT_TYPES: Dict[str, str] = {
    "empty": "Empty",
    "surface": "Surface",
    "grasp": "Grasp",
}

CONTACT_TYPE_ALIASES: Dict[str, str] = {
    "none": "empty",
    "surfacecontact": "surface",
    "surface_contact": "surface",
    "graspcontact": "grasp",
    "grasp_contact": "grasp",
}

# Canonical QP solver types.
QP_SOLVER_TYPES = {"any", "osqp", "lsq"}

QP_SOLVER_ALIASES: Dict[str, str] = {
    "default": "any",
    "bvls": "lsq",
    "scipy": "lsq",
    "lsq_linear": "lsq",
}


def normalize_contact_type(contact_type: str) -> str:
    """Normalize a contact type string.

    Args:
        contact_type: Raw contact type string (case insensitive).

    Returns:
        Canonical contact type ("Empty", "Surface" or "Grasp").

    Raises:
        ValueError: If the contact type is unknown.
    """
    if contact_type is None:
        raise ValueError("contact type is None")
    key = str(contact_type).strip().lower()
    key = CONTACT_TYPE_ALIASES.get(key, key)
    if key not in CONTACT_TYPES:
        raise ValueError(f"Invalid contact type: {contact_type}")
    return CONTACT_TYPES[key]


def normalize_qp_solver_type(qp_solver_type: str) -> str:
    """Normalize a QP solver type string.

    Args:
        qp_solver_type: Raw solver type string (case insensitive).

    Returns:
        Canonical solver type ("any", "osqp" or "lsq").

    Raises:
        ValueError: If the solver type is unknown.
    """
    if qp_solver_type is None:
        raise ValueError("qp_solver_type is None")
    key = str(qp_solver_type).strip().lower()
    canonical = QP_SOLVER_ALIASES.get(key, key)
    if canonical not in QP_SOLVER_TYPES:
        raise ValueError(f"Unknown qp_solver_type: {qp_solver_type}")
    return canonical
