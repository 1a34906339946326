# Overview: Role-specific dashboard derivations computed from synchronized collections.
# Functions take rows or a DataStore and return plain dicts and lists.
