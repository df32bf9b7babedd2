"""social/ -- Follow graph and viewer-relative profiles for Conduit.

Layer rule: social/ may import from auth/ (models and UserStore) and core/.
It does NOT import from api/. auth/ never imports from social/.
"""
