"""
Names the oracle knows from the TypeScript standard library.
"""

LIB_FILE = "lib.d.ts"

ARRAY_TYPES = frozenset({"Array", "ReadonlyArray"})

# Utility types collapsed into a concrete object by simplification
MAPPED_UTILITIES = frozenset({"Partial", "Required", "Readonly", "Pick", "Omit"})

# Utility types filtering a union
FILTERING_UTILITIES = frozenset({"NonNullable", "Exclude", "Extract"})

# Wrapper generics kept as `Generic` nodes, with the lib file declaring them
GENERIC_WRAPPERS = {
    "Promise": "lib.es2015.promise.d.ts",
    "PromiseLike": "lib.es5.d.ts",
    "Awaited": "lib.es5.d.ts",
    "Record": "lib.es5.d.ts",
    "ReturnType": "lib.es5.d.ts",
    "Parameters": "lib.es5.d.ts",
    "InstanceType": "lib.es5.d.ts",
    "ConstructorParameters": "lib.es5.d.ts",
    "ThisParameterType": "lib.es5.d.ts",
    "OmitThisParameter": "lib.es5.d.ts",
    "Uppercase": "lib.es5.d.ts",
    "Lowercase": "lib.es5.d.ts",
    "Capitalize": "lib.es5.d.ts",
    "Uncapitalize": "lib.es5.d.ts",
    "Map": "lib.es2015.collection.d.ts",
    "Set": "lib.es2015.collection.d.ts",
    "WeakMap": "lib.es2015.collection.d.ts",
    "WeakSet": "lib.es2015.collection.d.ts",
    "ReadonlyMap": "lib.es2015.collection.d.ts",
    "ReadonlySet": "lib.es2015.collection.d.ts",
    "Iterable": "lib.es2015.iterable.d.ts",
    "Iterator": "lib.es2015.iterable.d.ts",
    "IterableIterator": "lib.es2015.iterable.d.ts",
    "AsyncIterable": "lib.es2018.asynciterable.d.ts",
    "AsyncIterator": "lib.es2018.asynciterable.d.ts",
    "AsyncIterableIterator": "lib.es2018.asynciterable.d.ts",
    "Generator": "lib.es2015.generator.d.ts",
    "AsyncGenerator": "lib.es2018.asyncgenerator.d.ts",
}

# Non-generic library types documented as references
LIB_TYPES = {
    "Date": "lib.es5.d.ts",
    "Error": "lib.es5.d.ts",
    "RegExp": "lib.es5.d.ts",
    "Function": "lib.es5.d.ts",
    "Object": "lib.es5.d.ts",
    "String": "lib.es5.d.ts",
    "Number": "lib.es5.d.ts",
    "Boolean": "lib.es5.d.ts",
    "Symbol": "lib.es2015.symbol.d.ts",
    "BigInt": "lib.es2020.bigint.d.ts",
    "ArrayBuffer": "lib.es5.d.ts",
    "Uint8Array": "lib.es5.d.ts",
    "URL": "lib.dom.d.ts",
    "Request": "lib.dom.d.ts",
    "Response": "lib.dom.d.ts",
    "Headers": "lib.dom.d.ts",
    "HTMLElement": "lib.dom.d.ts",
    "Element": "lib.dom.d.ts",
    "Event": "lib.dom.d.ts",
}


def lib_file_for(name: str) -> str:
    return GENERIC_WRAPPERS.get(name) or LIB_TYPES.get(name) or LIB_FILE
