class IdentifierIssuer(object):
    """
    An IdentifierIssuer hands out blank node labels ('<prefix><counter>'),
    remembering which label each original identifier received and in which
    order they were issued.
    """

    def __init__(self, prefix):
        """
        Initializes a new IdentifierIssuer.

        :param prefix: the prefix to use ('<prefix><counter>').
        """
        self.prefix = prefix
        self.counter = 0
        self.existing = {}
        self.order = []

    def get_id(self, old=None):
        """
        Gets the new identifier for the given old identifier, where if no old
        identifier is given a new identifier will be generated.

        :param [old]: the old identifier to get the new identifier for.

        :return: the new identifier.
        """
        if old is not None and old in self.existing:
            return self.existing[old]

        id_ = self.prefix + str(self.counter)
        self.counter += 1

        if old is not None:
            self.existing[old] = id_
            self.order.append(old)

        return id_

    def has_id(self, old):
        """
        Returns True if the given old identifier has already been assigned a
        new identifier.
        """
        return old in self.existing

    def clone(self):
        """
        Copies this issuer so that the copy can issue independently.

        :return: the copy.
        """
        copy = IdentifierIssuer(self.prefix)
        copy.counter = self.counter
        copy.existing = dict(self.existing)
        copy.order = list(self.order)
        return copy
