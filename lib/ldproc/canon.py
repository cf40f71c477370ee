"""
RDF dataset canonicalization.

:class:`URDNA2015` relabels the blank nodes of a dataset with canonical
'_:c14n' identifiers that do not depend on the input labels or quad order,
so that isomorphic datasets serialize to identical N-Quads.
:class:`URGNA2012` is the older graph variant kept for compatibility.

Telling apart blank nodes whose surroundings look the same may need a
number of steps that grows factorially with the size of such groups. Each
run therefore gets a work budget (``max_work``): every permutation tried
and every recursive N-degree hash costs one unit, and running out raises
:class:`~ldproc.errors.CanonicalizationComplexityExceeded`.

.. module:: ldproc.canon
  :synopsis: URDNA2015 and URGNA2012 canonical labeling
"""

import copy
import hashlib
import logging

from ldproc.errors import CanonicalizationComplexityExceeded
from ldproc.identifier_issuer import IdentifierIssuer
from ldproc.nquads import parse_nquads, serialize_nquad

log = logging.getLogger(__name__)

DEFAULT_MAX_WORK = 100000

NQUADS_FORMATS = ('application/n-quads', 'application/nquads')


class UnknownFormatError(ValueError):
    """
    Raised when canonical output is requested in an unknown format.
    """

    def __init__(self, message, format):
        ValueError.__init__(self, message)
        self.format = format


class URDNA2015(object):
    """
    URDNA2015 implements the URDNA2015 RDF Dataset Normalization Algorithm.
    """

    POSITIONS = {'subject': 's', 'object': 'o', 'name': 'g'}

    def __init__(self, max_work=DEFAULT_MAX_WORK):
        """
        :param max_work: the number of permutation and N-degree hashing
          steps allowed before giving up, None for no limit.
        """
        self.blank_node_info = {}
        self.hash_to_blank_nodes = {}
        self.canonical_issuer = IdentifierIssuer('_:c14n')
        self.quads = []
        self.max_work = max_work
        self.work = 0

    def spend(self, units=1):
        """
        Consumes work from the budget.

        :param units: the amount of work to consume.
        """
        self.work += units
        if self.max_work is not None and self.work > self.max_work:
            raise CanonicalizationComplexityExceeded(
                'Canonicalization exceeded its work limit; the dataset has '
                'too many blank nodes that cannot be told apart.',
                details={'maxWork': self.max_work})

    def main(self, dataset, options=None):
        """
        Canonicalizes a dataset.

        :param dataset: the RDF dataset, it is not modified.
        :param options: the options to use.
          [format] 'application/n-quads' to return an N-Quads string,
            otherwise the canonical dataset is returned.

        :return: the canonical N-Quads string or dataset.
        """
        options = options or {}
        if 'format' in options and options['format'] not in NQUADS_FORMATS:
            raise UnknownFormatError(
                'Unknown output format.', options['format'])

        # collect quads and the quads each blank node occurs in
        for graph_name, triples in dataset.items():
            for triple in triples:
                quad = copy.deepcopy(triple)
                if graph_name != '@default':
                    quad['name'] = {
                        'type': 'blank node' if graph_name.startswith('_:')
                        else 'IRI',
                        'value': graph_name
                    }
                self.quads.append(quad)

                for key, component in quad.items():
                    if key == 'predicate' or component['type'] != 'blank node':
                        continue
                    self.blank_node_info.setdefault(
                        component['value'], {'quads': []})['quads'].append(quad)

        # issue canonical identifiers for blank nodes with unique hashes
        non_normalized = set(self.blank_node_info.keys())
        simple = True
        while simple:
            simple = False
            self.hash_to_blank_nodes = {}
            for id_ in sorted(non_normalized):
                hash = self.hash_first_degree_quads(id_)
                self.hash_to_blank_nodes.setdefault(hash, []).append(id_)

            for hash, id_list in sorted(self.hash_to_blank_nodes.items()):
                if len(id_list) > 1:
                    continue
                id_ = id_list[0]
                self.canonical_issuer.get_id(id_)
                non_normalized.remove(id_)
                del self.hash_to_blank_nodes[hash]
                simple = True

        log.debug(
            'Issued %d canonical identifier(s) from first degree hashes, '
            '%d hash group(s) left.', self.canonical_issuer.counter,
            len(self.hash_to_blank_nodes))

        # break ties within the remaining groups with N-degree hashes
        for hash, id_list in sorted(self.hash_to_blank_nodes.items()):
            hash_path_list = []
            for id_ in id_list:
                if self.canonical_issuer.has_id(id_):
                    continue
                issuer = IdentifierIssuer('_:b')
                issuer.get_id(id_)
                hash_path_list.append(self.hash_n_degree_quads(id_, issuer))

            for result in sorted(hash_path_list, key=lambda r: r['hash']):
                for existing in result['issuer'].order:
                    self.canonical_issuer.get_id(existing)

        log.debug('Canonicalization used %d unit(s) of work.', self.work)

        # relabel every quad with the canonical identifiers
        normalized = []
        for quad in self.quads:
            for key, component in quad.items():
                if key != 'predicate' and component['type'] == 'blank node':
                    component['value'] = self.canonical_issuer.get_id(
                        component['value'])
            normalized.append(serialize_nquad(quad))
        normalized.sort()

        if options.get('format') in NQUADS_FORMATS:
            return ''.join(normalized)
        return parse_nquads(''.join(normalized))

    def hash_first_degree_quads(self, id_):
        """
        Hashes the quads a blank node occurs in, with the blank node itself
        written as '_:a' and every other blank node as '_:z'.

        :param id_: the blank node identifier.

        :return: the hex digest, cached per blank node.
        """
        info = self.blank_node_info[id_]
        if 'hash' in info:
            return info['hash']

        nquads = []
        for quad in info['quads']:
            quad_copy = {}
            for key, component in quad.items():
                if key == 'predicate':
                    quad_copy[key] = component
                else:
                    quad_copy[key] = self.modify_first_degree_component(
                        id_, component, key)
            nquads.append(serialize_nquad(quad_copy))
        nquads.sort()

        info['hash'] = self.hash_nquads(nquads)
        return info['hash']

    def modify_first_degree_component(self, id_, component, key):
        if component['type'] != 'blank node':
            return component
        return {
            'type': 'blank node',
            'value': '_:a' if component['value'] == id_ else '_:z'
        }

    def hash_related_blank_node(self, related, quad, issuer, position):
        """
        Hashes a blank node related to another through a quad.

        :param related: the related blank node identifier.
        :param quad: the quad relating them.
        :param issuer: the issuer of the current path.
        :param position: 's', 'o' or 'g', where related occurs in quad.

        :return: the hex digest.
        """
        # prefer the canonical identifier, then the path identifier
        if self.canonical_issuer.has_id(related):
            id_ = self.canonical_issuer.get_id(related)
        elif issuer.has_id(related):
            id_ = issuer.get_id(related)
        else:
            id_ = self.hash_first_degree_quads(related)

        md = self.create_hash()
        md.update(position.encode('utf8'))
        if position != 'g':
            md.update(self.get_related_predicate(quad).encode('utf8'))
        md.update(id_.encode('utf8'))
        return md.hexdigest()

    def get_related_predicate(self, quad):
        return '<' + quad['predicate']['value'] + '>'

    def hash_n_degree_quads(self, id_, issuer):
        """
        Hashes a blank node together with the blank nodes reachable from it,
        choosing the lexicographically least labeling path.

        :param id_: the blank node identifier.
        :param issuer: the issuer of the current path.

        :return: {'hash': hex digest, 'issuer': the issuer of the chosen
          path}.
        """
        self.spend()
        hash_to_related = self.create_hash_to_related(id_, issuer)

        md = self.create_hash()
        for hash, blank_nodes in sorted(hash_to_related.items()):
            md.update(hash.encode('utf8'))
            chosen_path = ''
            chosen_issuer = None

            for permutation in permutations(blank_nodes):
                self.spend()
                issuer_copy = issuer.clone()
                path = ''
                recursion_list = []

                skip_to_next_permutation = False
                for related in permutation:
                    if self.canonical_issuer.has_id(related):
                        path += self.canonical_issuer.get_id(related)
                    else:
                        if not issuer_copy.has_id(related):
                            recursion_list.append(related)
                        path += issuer_copy.get_id(related)

                    if _worse_path(path, chosen_path):
                        skip_to_next_permutation = True
                        break

                if skip_to_next_permutation:
                    continue

                for related in recursion_list:
                    result = self.hash_n_degree_quads(related, issuer_copy)
                    path += issuer_copy.get_id(related)
                    path += '<' + result['hash'] + '>'
                    issuer_copy = result['issuer']

                    if _worse_path(path, chosen_path):
                        skip_to_next_permutation = True
                        break

                if skip_to_next_permutation:
                    continue

                if len(chosen_path) == 0 or path < chosen_path:
                    chosen_path = path
                    chosen_issuer = issuer_copy

            md.update(chosen_path.encode('utf8'))
            issuer = chosen_issuer

        return {'hash': md.hexdigest(), 'issuer': issuer}

    def create_hash_to_related(self, id_, issuer):
        """
        Groups the blank nodes related to id_ by their related hash.
        """
        hash_to_related = {}
        for quad in self.blank_node_info[id_]['quads']:
            for key, component in quad.items():
                if (key != 'predicate' and
                        component['type'] == 'blank node' and
                        component['value'] != id_):
                    related = component['value']
                    hash = self.hash_related_blank_node(
                        related, quad, issuer, self.POSITIONS[key])
                    hash_to_related.setdefault(hash, []).append(related)
        return hash_to_related

    def create_hash(self):
        return hashlib.sha256()

    def hash_nquads(self, nquads):
        md = self.create_hash()
        for nquad in nquads:
            md.update(nquad.encode('utf8'))
        return md.hexdigest()


class URGNA2012(URDNA2015):
    """
    URGNA2012 implements the URGNA2012 RDF Graph Normalization Algorithm.
    """

    def modify_first_degree_component(self, id_, component, key):
        if component['type'] != 'blank node':
            return component
        if key == 'name':
            return {'type': 'blank node', 'value': '_:g'}
        return URDNA2015.modify_first_degree_component(
            self, id_, component, key)

    def get_related_predicate(self, quad):
        return quad['predicate']['value']

    def create_hash_to_related(self, id_, issuer):
        # only subjects ('p') and objects ('r') relate blank nodes
        hash_to_related = {}
        for quad in self.blank_node_info[id_]['quads']:
            if (quad['subject']['type'] == 'blank node' and
                    quad['subject']['value'] != id_):
                related = quad['subject']['value']
                position = 'p'
            elif (quad['object']['type'] == 'blank node' and
                    quad['object']['value'] != id_):
                related = quad['object']['value']
                position = 'r'
            else:
                continue

            hash = self.hash_related_blank_node(
                related, quad, issuer, position)
            hash_to_related.setdefault(hash, []).append(related)
        return hash_to_related

    def create_hash(self):
        return hashlib.sha1()


ALGORITHMS = {
    'URDNA2015': URDNA2015,
    'URGNA2012': URGNA2012,
}


def _worse_path(path, chosen_path):
    return (len(chosen_path) != 0 and
            len(path) >= len(chosen_path) and
            path > chosen_path)


def permutations(elements):
    """
    Generates all of the possible permutations for the given list of
    elements, in Steinhaus-Johnson-Trotter order starting from the sorted
    list.

    :param elements: the list of elements to permutate, it is sorted and
      permuted in place.
    """
    elements.sort()
    left = {v: True for v in elements}

    length = len(elements)
    last = length - 1
    while True:
        yield elements

        # get largest mobile element k
        # (mobile: element is greater than the one it is looking at)
        k, pos = None, 0
        for i in range(length):
            e = elements[i]
            is_left = left[e]
            if ((k is None or e > k) and
                    ((is_left and i > 0 and e > elements[i - 1]) or
                     (not is_left and i < last and e > elements[i + 1]))):
                k, pos = e, i

        # no more permutations
        if k is None:
            return

        # swap k and the element it is looking at
        swap = pos - 1 if left[k] else pos + 1
        elements[pos], elements[swap] = elements[swap], k

        # reverse the direction of all elements larger than k
        for i in range(length):
            if elements[i] > k:
                left[elements[i]] = not left[elements[i]]


def normalize(dataset, options=None):
    """
    Canonicalizes an RDF dataset.

    :param dataset: the RDF dataset.
    :param options: the options to use.
      [algorithm] 'URDNA2015' (default) or 'URGNA2012'.
      [maxWork] the work budget (default: 100000), None for no limit.
      [format] 'application/n-quads' for an N-Quads string.

    :return: the canonical N-Quads string or dataset.
    """
    options = options or {}
    algorithm = options.get('algorithm', 'URDNA2015')
    if algorithm not in ALGORITHMS:
        raise ValueError(
            'Unsupported normalization algorithm %r.' % (algorithm,))
    max_work = options.get('maxWork', DEFAULT_MAX_WORK)
    return ALGORITHMS[algorithm](max_work=max_work).main(dataset, options)
