# Role: Shared singletons for the API layer. One FlowController per process, so in-memory sessions survive
# across requests.

from ticketdesk.core.flow_controller import FlowController

flow_controller = FlowController()
