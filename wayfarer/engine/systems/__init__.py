"""
Engine systems that keep the client state in sync with the server.

- proximity: per-channel nearby-entity cache
- movement: heading/speed and the combat status block
- party: party roster
- text: wrapping, content ratings, compass helpers
- combat: combat outcome formatting
- router: message dispatch by kind
"""
