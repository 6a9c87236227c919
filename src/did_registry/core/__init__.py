"""DID Registry core -- shared types, errors, configuration and store interfaces."""
