"""
General-purpose helpers not related to the reconciliation itself
(neither to the actions nor to the engines nor to the structs),
which are used to prepare and control the runtime environment.

Helpers do not depend on anything else in the library. As a rule of thumb,
they MUST be abstracted from the library to such an extent that they could
be extracted as reusable libraries.
"""
