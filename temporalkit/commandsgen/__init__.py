"""Parsing of command specifications and generation of code and docs from them."""