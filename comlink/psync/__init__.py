"""Vector clocks, membership, context graph, stability, masks and wire encoding."""