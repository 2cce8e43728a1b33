"""Fan-out of live events to Socket.IO connections.

Delivery is best-effort: a disconnected client misses events until it pulls
``/api/users`` + ``/api/live`` and resyncs on reconnect.
"""

LIVE_NAMESPACE = '/ws'

# Outbound event names
PLAYERS_ELIMINATED = 'event:playersEliminated'
PLAYER_UN_ELIMINATED = 'event:playerUnEliminated'
ALL_PLAYERS_RESET = 'event:allPlayersReset'
COINS_UPDATED = 'event:coinsUpdated'
SHAPE_QUEST_STARTED = 'event:shapeQuestStarted'
SHAPE_QUEST_SYNC = 'event:shapeQuestSync'
AUCTION_STARTED = 'event:auctionStarted'
AUCTION_SYNC = 'event:auctionSync'
NEW_BID = 'event:newBid'
AUCTION_ENDED = 'event:auctionEnded'
FORCE_DISCONNECT = 'forceDisconnect'


class Broadcaster:
    def __init__(self, socketio, namespace=LIVE_NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def emit_all(self, event, payload):
        self.socketio.emit(event, payload, namespace=self.namespace)

    def emit_to(self, connection_id, event, payload):
        self.socketio.emit(event, payload, to=connection_id, namespace=self.namespace)

    def force_disconnect(self, connection_id):
        """Tell a connection it has been ousted, then drop it server-side."""
        self.emit_to(connection_id, FORCE_DISCONNECT, {})
        # No-op when the sid is already gone
        self.socketio.server.disconnect(connection_id, namespace=self.namespace)
