from arena.services.storage import MinioFileStore, _parse_endpoint


class StubMinio:
    def __init__(self, exists=False):
        self.exists = exists
        self.objects = {}
        self.made = 0

    def bucket_exists(self, bucket):
        return self.exists

    def make_bucket(self, bucket):
        self.made += 1

    def put_object(self, bucket, path, stream, length, content_type):
        self.objects[path] = (stream.read(), content_type)

    def remove_object(self, bucket, path):
        del self.objects[path]


def test_parse_endpoint():
    assert _parse_endpoint("http://minio:9000") == ("minio:9000", False)
    assert _parse_endpoint("https://s3.example.com") == ("s3.example.com", True)


def test_store_creates_bucket_once_and_removes():
    client = StubMinio()
    store = MinioFileStore(client, "subs")
    assert store.store(b"id,y\n1,0\n", "a/b/p.csv") == "a/b/p.csv"
    store.store(b"id,y\n", "a/b/q.csv")
    assert client.made == 1
    assert client.objects["a/b/p.csv"] == (b"id,y\n1,0\n", "text/csv")
    store.remove("a/b/p.csv")
    assert list(client.objects) == ["a/b/q.csv"]


def test_existing_bucket_is_not_recreated():
    client = StubMinio(exists=True)
    MinioFileStore(client, "subs").store(b"x", "p.csv")
    assert client.made == 0
