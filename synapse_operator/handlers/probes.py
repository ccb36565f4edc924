import datetime
import kopf


# Liveness probe
@kopf.on.probe(id="now")
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id="sensors")
def get_sensor_state(memo: kopf.Memo, **kwargs):
    sensor = getattr(memo, "sensor", None)
    return sensor.asdict() if sensor else {}
