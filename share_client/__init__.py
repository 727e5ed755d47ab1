"""Client-side key custody for zero-knowledge sharing.

Keys are generated, used and encoded here, on the sharing client.
The server package never imports this one.
"""
