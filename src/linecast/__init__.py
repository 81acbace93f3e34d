"""
Broadcasts the lines of a text file over a TCP connection, to simulate a continuous data feed.

- Conduit: a transport stream to the listener. SocketConduit for plain TCP,
  TLSConduit once the socket has been secured.
- ManagedConnection: holds at most one conduit to a fixed endpoint. connect() reopens it
  when it has dropped, send() writes a line. Failures are reported as events rather than raised:
  ConnectorConnectedEvent, ConnectorDisconnectingEvent, DataSentEvent, ConnectionErrorEvent, SendErrorEvent.
- BroadcastLoop: sends each line in turn, reconnecting before each one, pausing between lines
  and repeating the file if asked. Stops cooperatively when its cancel event is set.
- BroadcastTask: runs the loop on a background thread. Events are queued and delivered
  to listeners on the host thread by publish().
- configuration: configobj files validated against linecast.schema.cfg, overridden from the command line.
"""
