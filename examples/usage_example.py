"""
ASL workflow runtime usage example
"""
import asyncio
import logging

from asl_runtime import ExecutionEngine, ExecutionError, LocalResourceRegistry, WorkflowParser


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


ORDER_WORKFLOW = """
Comment: Price an order, ship each line and report the outcome
StartAt: PriceOrder
States:
  PriceOrder:
    Type: Task
    Resource: price-order
    ResultSelector:
      total.$: $.total
    ResultPath: $.pricing
    Catch:
      - ErrorEquals: [OutOfStock]
        ResultPath: $.failure
        Next: Rejected
    Next: CheckTotal
  CheckTotal:
    Type: Choice
    Choices:
      - Variable: $.pricing.total
        NumericGreaterThan: 100
        Next: ShipLines
    Default: Rejected
  ShipLines:
    Type: Map
    ItemsPath: $.lines
    MaxConcurrency: 2
    Parameters:
      order.$: $.orderId
      sku.$: $$.Map.Item.Value.sku
      position.$: $$.Map.Item.Index
    Iterator:
      StartAt: Ship
      States:
        Ship:
          Type: Task
          Resource: ship-line
          End: true
    ResultPath: $.shipments
    Next: Summarize
  Summarize:
    Type: Pass
    Parameters:
      message.$: States.Format('Order {} shipped in {} parcels', $.orderId, States.ArrayLength($.shipments))
    End: true
  Rejected:
    Type: Pass
    Parameters:
      message.$: States.Format('Order {} rejected', $.orderId)
      failure.$: $.failure
    End: true
"""


def build_resources() -> LocalResourceRegistry:
    """Register the resources the order workflow calls"""
    registry = LocalResourceRegistry()
    stock = {"apple": 10, "pear": 0, "plum": 4}
    prices = {"apple": 40, "pear": 25, "plum": 35}

    @registry.resource("price-order", description="Sum line prices")
    def price_order(order):
        for line in order["lines"]:
            if stock.get(line["sku"], 0) < line["quantity"]:
                raise ExecutionError("OutOfStock", f"Not enough {line['sku']} in stock")
        return {"total": sum(prices[line["sku"]] * line["quantity"] for line in order["lines"])}

    @registry.resource("ship-line", description="Book a parcel for one line")
    async def ship_line(payload):
        await asyncio.sleep(0.1)
        return {"parcel": f"{payload['order']}-{payload['position']}", "sku": payload["sku"]}

    return registry


async def example_order_workflow(engine: ExecutionEngine, resources: LocalResourceRegistry):
    """Run the workflow for an order that ships and one that is rejected"""
    definition = WorkflowParser().parse(ORDER_WORKFLOW, fmt="yaml")

    print("\n=== Order that ships ===")
    output = await engine.run(
        definition,
        {"orderId": "A-1", "lines": [{"sku": "apple", "quantity": 2}, {"sku": "plum", "quantity": 1}]},
        resources=resources,
    )
    print(output["message"])
    for shipment in output["shipments"]:
        print(f"  parcel {shipment['parcel']}: {shipment['sku']}")

    print("\n=== Order that is rejected ===")
    output = await engine.run(
        definition,
        {"orderId": "B-2", "lines": [{"sku": "pear", "quantity": 1}]},
        resources=resources,
    )
    print(output["message"], "-", output["failure"]["Cause"])


async def main():
    engine = ExecutionEngine()
    resources = build_resources()
    await example_order_workflow(engine, resources)

    print("\n=== Executions ===")
    for execution_id, record in engine.executions.items():
        print(f"{execution_id}: {record.status}")


if __name__ == "__main__":
    asyncio.run(main())
