"""
Interactive editing: graph store, id generation, handles and the session.
"""
