"""Room and match domain services.

Routes and socket handlers reach these through ``container.get_services()``;
apart from that helper nothing in here touches Flask requests or Socket.IO.
"""
