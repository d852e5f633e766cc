from .contact import CONTACT_FORM

BUILTIN_FORMS = (CONTACT_FORM,)
